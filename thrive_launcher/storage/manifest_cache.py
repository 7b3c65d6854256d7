"""
A small file-based cache that keeps the last successfully fetched manifest.
Lets the launcher start offline with the versions it saw most recently.
"""

import hashlib
import json
import logging
import time
from pathlib import Path

log = logging.getLogger(__name__)


class ManifestCache:
    """Stores raw manifest documents keyed by their source, with a TTL."""

    def __init__(self, data_dir_path: Path, max_age_days: int = 7):
        """
        Initializes the cache.

        Args:
            data_dir_path: Launcher data directory; entries live in its
                ``cache`` subfolder.
            max_age_days: Age in days after which an entry is ignored. Zero
                disables the cache.
        """
        self.cache_dir = Path(data_dir_path) / "cache"
        self.max_age_seconds = max_age_days * 86400

    def _get_cache_path(self, source: str) -> Path:
        """Generates a safe filename for a given manifest source."""
        hashed_key = hashlib.sha3_256(source.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"manifest_{hashed_key}.json"

    def get(self, source: str) -> str | None:
        """
        Returns the cached manifest text for ``source``, or None if missing or
        expired.
        """
        if self.max_age_seconds <= 0:
            return None
        cache_path = self._get_cache_path(source)
        if not cache_path.is_file():
            return None

        try:
            if time.time() - cache_path.stat().st_mtime > self.max_age_seconds:
                cache_path.unlink()
                return None
            with open(cache_path, encoding="utf-8") as f:
                data = json.load(f)
            return data.get("manifest")
        except (json.JSONDecodeError, OSError) as e:
            log.debug(f"Manifest cache read failed for '{source}': {e}")
            return None

    def set(self, source: str, manifest: str) -> bool:
        """Saves a manifest document."""
        if self.max_age_seconds <= 0:
            return False
        cache_path = self._get_cache_path(source)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            payload = {"source": source, "timestamp": time.time(), "manifest": manifest}
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            return True
        except (TypeError, OSError) as e:
            log.warning(f"Manifest cache write failed for '{source}': {e}")
            return False

    def clear(self) -> bool:
        """Removes all cached manifests."""
        try:
            for cache_file in self.cache_dir.glob("manifest_*.json"):
                cache_file.unlink()
            return True
        except OSError as e:
            log.error(f"Failed to clear manifest cache: {e}")
            return False
