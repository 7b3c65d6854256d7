"""
Provides content-hash verification for downloaded release archives.
"""

import asyncio
import hashlib
import logging
from collections.abc import Callable
from pathlib import Path

log = logging.getLogger(__name__)

HashProgressCallback = Callable[[float], None]


class IntegrityVerifier:
    """A collection of static methods for validating archive integrity."""

    CHUNK_SIZE = 1048576  # 1 MB

    @staticmethod
    def compute_hash(
        filepath: Path,
        on_progress: HashProgressCallback | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> str:
        """
        Streams a file through SHA3-256 and returns the hex digest.

        Args:
            filepath: File to hash.
            on_progress: Receives the percentage of the file consumed so far.
                Errors raised by the callback are logged and ignored.
            chunk_size: Number of bytes read per step.
        """
        filepath = Path(filepath)
        total_size = filepath.stat().st_size
        hasher = hashlib.sha3_256()
        bytes_read = 0

        with open(filepath, "rb") as f:
            while chunk := f.read(chunk_size):
                hasher.update(chunk)
                bytes_read += len(chunk)
                if on_progress:
                    percentage = bytes_read * 100 / total_size if total_size else 100.0
                    try:
                        on_progress(percentage)
                    except Exception as e:
                        log.debug(f"Hash progress callback failed: {e}")

        if on_progress and total_size == 0:
            try:
                on_progress(100.0)
            except Exception as e:
                log.debug(f"Hash progress callback failed: {e}")

        return hasher.hexdigest()

    @staticmethod
    def verify(
        filepath: Path,
        expected_hash: str,
        on_progress: HashProgressCallback | None = None,
    ) -> bool:
        """
        Checks that a file hashes to ``expected_hash``.

        Returns:
            True if the digests match (ignoring case), False otherwise.
        """
        actual = IntegrityVerifier.compute_hash(filepath, on_progress)
        if actual.lower() != expected_hash.lower():
            log.error(
                f"Hashes don't match for '{Path(filepath).name}'! "
                f"{expected_hash} != {actual}"
            )
            return False
        log.debug(f"Hash verified for '{Path(filepath).name}'.")
        return True

    @staticmethod
    async def verify_async(
        filepath: Path,
        expected_hash: str,
        on_progress: HashProgressCallback | None = None,
    ) -> bool:
        """Runs verify() in a worker thread so the event loop stays responsive."""
        return await asyncio.to_thread(
            IntegrityVerifier.verify, filepath, expected_hash, on_progress
        )
