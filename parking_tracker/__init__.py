"""
Parking lot tracker: vehicle entry/exit sessions, spot counter and fees.
"""

__version__ = "1.0.0"
