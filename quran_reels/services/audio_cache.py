"""
Audio Cache - persistent key-addressed store for downloaded verse recitations.

Entries live at <cache_dir>/<reciter_id>/<surah:3><verse:3>.mp3 and are never
evicted. Writes go to a temporary file in the entry's directory and are moved
into place with os.replace, so readers never observe a half-written entry.
"""

import asyncio
import logging
import os
import shutil
import tempfile
import weakref
from typing import Optional

from quran_reels.models import AudioKey

logger = logging.getLogger(__name__)


class AudioCache:
    """Key-addressed audio store with atomic writes and per-key locks."""

    def __init__(self, cache_dir: str):
        self.cache_dir = cache_dir
        self._locks: weakref.WeakValueDictionary[AudioKey, asyncio.Lock] = weakref.WeakValueDictionary()

    def path_for(self, key: AudioKey) -> str:
        """
        Location of the cache entry for a key (may not exist).

        Raises:
            ValueError: If the entry would resolve outside cache_dir
        """
        root = os.path.abspath(self.cache_dir)
        path = os.path.abspath(os.path.join(root, key.reciter_id, f"{key.code}.mp3"))
        if os.path.commonpath([root, path]) != root or os.path.dirname(path) == root:
            raise ValueError(f"Cache entry for {key.reciter_id!r} escapes {self.cache_dir}")
        return os.path.join(self.cache_dir, key.reciter_id, f"{key.code}.mp3")

    def lock_for(self, key: AudioKey) -> asyncio.Lock:
        """
        Lock serializing lookup-download-store for one key within this process.

        Entries disappear once no coroutine holds or waits on the lock, so a
        later event loop gets a fresh lock.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def get(self, key: AudioKey) -> Optional[str]:
        """Return the entry path if the key is cached with a non-empty file."""
        path = self.path_for(key)
        if os.path.isfile(path) and os.path.getsize(path) > 0:
            return path
        return None

    def put(self, key: AudioKey, source_path: str) -> str:
        """
        Store a copy of source_path under key, atomically.

        Returns:
            The cache entry path
        """
        entry_path = self.path_for(key)
        entry_dir = os.path.dirname(entry_path)
        os.makedirs(entry_dir, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=entry_dir, prefix=f".{key.code}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as tmp_file, open(source_path, "rb") as src:
                shutil.copyfileobj(src, tmp_file)
            os.replace(tmp_path, entry_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"Cached audio {key.reciter_id}/{key.code} -> {entry_path}")
        return entry_path
