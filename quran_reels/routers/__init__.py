"""
FastAPI routers for the reel service.
"""

from quran_reels.routers import health, reels

__all__ = ["health", "reels"]
