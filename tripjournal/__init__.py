"""
Trip journal core: session lifecycle, trip history and intention analytics.
"""

__version__ = "1.0.0"
