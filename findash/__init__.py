"""
findash
Data-acquisition backend for the financial dashboard
"""

__version__ = "0.1.0"
__author__ = "findash Team"

from . import analysis, config, data, utils

__all__ = ["analysis", "config", "data", "utils"]
