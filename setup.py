#!/usr/bin/env python
"""
Legacy entry point for armakf.

All metadata lives in pyproject.toml; this file only lets tools that still
call ``setup.py`` directly build the package.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()
