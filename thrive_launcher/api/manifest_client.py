"""
Fetches the version manifest from a web server or a local file.
"""

import asyncio
import logging
from pathlib import Path

import aiofiles
import aiohttp

from thrive_launcher.exceptions import ManifestUnavailableError
from thrive_launcher.storage.manifest_cache import ManifestCache

log = logging.getLogger(__name__)


def is_remote_source(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class ManifestClient:
    """
    Retrieves raw manifest documents.

    Remote manifests that were fetched successfully are remembered in a
    ManifestCache and served from there when the server cannot be reached.
    """

    def __init__(
        self,
        cache: ManifestCache | None = None,
        timeout_s: float = 30,
        session: aiohttp.ClientSession | None = None,
    ):
        self.cache = cache
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session

    async def fetch(self, source: str) -> str:
        """
        Returns the manifest text found at ``source``.

        Raises:
            ManifestUnavailableError: If the manifest could not be read and no
            cached copy is available.
        """
        if not is_remote_source(source):
            return await self._read_local(Path(source).expanduser())

        try:
            text = await self._fetch_remote(source)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.cache and (cached := self.cache.get(source)) is not None:
                log.warning(
                    f"[yellow]Could not fetch version information ({e}), "
                    "using the cached copy.[/yellow]"
                )
                return cached
            raise ManifestUnavailableError(
                f"Failed to retrieve version information from '{source}': {e}"
            ) from e

        if self.cache:
            self.cache.set(source, text)
        return text

    async def _fetch_remote(self, url: str) -> str:
        log.debug(f"Fetching version manifest from {url}")
        if self._session is not None:
            return await self._get_text(self._session, url)
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._get_text(session, url)

    async def _get_text(self, session: aiohttp.ClientSession, url: str) -> str:
        async with session.get(url) as response:
            response.raise_for_status()
            return await response.text()

    async def _read_local(self, path: Path) -> str:
        log.debug(f"Reading version manifest from {path}")
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestUnavailableError(
                f"Could not read version manifest '{path}': {e}"
            ) from e
