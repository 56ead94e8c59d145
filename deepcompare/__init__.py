"""
Deep Compare: content-based verification of two directory trees.
"""

APP_NAME = "DeepCompare"
APP_DISPLAY_NAME = "Deep Compare"
APP_VERSION = "1.0.0"

__version__ = APP_VERSION
