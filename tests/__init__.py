"""
ARMA Kalman Toolbox Test Suite

Tests for the state-space builder, the two initial covariance solvers, the
Kalman filter, the likelihood helpers, the packed storage utilities and the
configuration manager.
"""
