"""
GRC data orchestration and real-time sync service.
"""

__version__ = "0.1.0"
