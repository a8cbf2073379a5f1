"""
Quran Reels - renders verse ranges into narrated 9:16 videos.
"""

__version__ = "1.0.0"
