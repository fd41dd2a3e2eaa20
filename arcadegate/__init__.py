"""
arcadegate: license and admin authority for a multi-game platform.
"""

__version__ = "0.1.0"
