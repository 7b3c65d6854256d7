"""
Handles the low-level downloading of release archives over HTTP.

Bodies are streamed to disk chunk by chunk, so arbitrarily large archives
never have to fit in memory. A CancelToken lets the caller abort an in-flight
transfer; partial files never survive a cancellation or a transport error.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiofiles
import aiohttp

from thrive_launcher.exceptions import (
    DownloadAlreadyInProgressError,
    DownloadFailedError,
    OperationCanceled,
    UnexpectedContentTypeError,
)

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int | None], None]

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool() -> aiohttp.ClientSession:
    """
    Gets or creates the shared aiohttp ClientSession used for downloads.

    Only one connection pool is created for the lifetime of the launcher.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=4,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        # No total timeout: release archives can take a long time to arrive
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug("Created download connection pool.")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


class CancelToken:
    """
    Cooperative cancellation signal for a single download.

    Abort handles registered with the token are invoked once, when the token
    is canceled. Handles registered after cancellation run immediately.
    """

    def __init__(self) -> None:
        self._canceled = False
        self._handles: list[Callable[[], Any]] = []

    @property
    def canceled(self) -> bool:
        return self._canceled

    def cancel(self) -> None:
        if self._canceled:
            return
        self._canceled = True
        handles, self._handles = self._handles, []
        for handle in handles:
            handle()

    def register(self, handle: Callable[[], Any]) -> Callable[[], None]:
        """Registers an abort handle and returns a function that removes it."""
        if self._canceled:
            handle()
            return lambda: None
        self._handles.append(handle)

        def unregister() -> None:
            if handle in self._handles:
                self._handles.remove(handle)

        return unregister

    def raise_if_canceled(self) -> None:
        if self._canceled:
            raise OperationCanceled("Download canceled by user.")


@dataclass
class DownloadTask:
    """Mutable state of one in-flight transfer."""

    url: str
    destination: Path
    received: int = 0
    total: int | None = None
    content_type: str | None = None
    response: aiohttp.ClientResponse | None = field(default=None, repr=False)

    def abort(self) -> None:
        if self.response is not None:
            self.response.close()


def ensure_archive_content_type(content_type: str, allowed: list[str]) -> None:
    """
    Raises UnexpectedContentTypeError unless ``content_type`` is an allowed
    archive media type. Parameters such as ``; charset=`` are ignored.
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type not in {a.lower() for a in allowed}:
        raise UnexpectedContentTypeError(
            f"Download type is wrong: '{content_type or 'unknown'}' is not an archive."
        )


def _remove_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.warning(f"Could not remove partial download '{path}': {e}")


class Downloader:
    """A streaming file downloader with retry logic and single-flight protection."""

    def __init__(
        self,
        chunk_size: int = 131072,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        session: aiohttp.ClientSession | None = None,
    ):
        self.chunk_size = chunk_size
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._session = session
        self._active: DownloadTask | None = None

    @property
    def active(self) -> DownloadTask | None:
        """The transfer currently in flight, if any."""
        return self._active

    async def fetch(
        self,
        url: str,
        destination: Path,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancelToken | None = None,
    ) -> str:
        """
        Downloads ``url`` into ``destination``, overwriting it.

        Args:
            url: Remote file to fetch.
            destination: Local file to write; parent folders are created.
            on_progress: Called with (received_bytes, total_bytes) after every
                chunk. total_bytes is None when the server did not declare it.
            cancel_token: Cancels the transfer when signaled.

        Returns:
            The media type the server declared for the response.

        Raises:
            DownloadAlreadyInProgressError: If another fetch is still running.
            OperationCanceled: If the token was canceled.
            DownloadFailedError: If the server refused the file (4xx) or every
                attempt failed with a transport error.
        """
        if self._active is not None:
            raise DownloadAlreadyInProgressError(
                f"Already downloading '{self._active.url}'."
            )

        token = cancel_token or CancelToken()
        task = DownloadTask(url=url, destination=Path(destination))
        self._active = task
        try:
            return await self._fetch_with_retries(task, on_progress, token)
        finally:
            self._active = None

    async def _fetch_with_retries(
        self,
        task: DownloadTask,
        on_progress: ProgressCallback | None,
        token: CancelToken,
    ) -> str:
        last_exception: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            token.raise_if_canceled()
            try:
                return await self._fetch_once(task, on_progress, token)
            except OperationCanceled:
                _remove_partial(task.destination)
                log.info(f"Download of '{task.destination.name}' was canceled.")
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                _remove_partial(task.destination)
                if token.canceled:
                    raise OperationCanceled("Download canceled by user.") from e
                if isinstance(e, aiohttp.ClientResponseError) and 400 <= e.status < 500:
                    # Client errors do not go away on retry
                    raise DownloadFailedError(
                        f"Download failed: server answered {e.status} {e.message}"
                    ) from e
                last_exception = e
                log.debug(
                    f"Download attempt {attempt}/{self.max_attempts} for "
                    f"'{task.destination.name}' failed: {e}. Retrying..."
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))
            except BaseException:
                _remove_partial(task.destination)
                raise

        raise DownloadFailedError(
            f"Download failed: {last_exception}"
        ) from last_exception

    async def _fetch_once(
        self,
        task: DownloadTask,
        on_progress: ProgressCallback | None,
        token: CancelToken,
    ) -> str:
        session = self._session or await get_connection_pool()
        task.received = 0
        task.destination.parent.mkdir(parents=True, exist_ok=True)

        async with session.get(
            task.url, allow_redirects=True, headers={"Accept-Encoding": "identity"}
        ) as response:
            task.response = response
            unregister = token.register(task.abort)
            try:
                response.raise_for_status()
                task.total = response.content_length
                task.content_type = response.content_type

                async with aiofiles.open(task.destination, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        token.raise_if_canceled()
                        await f.write(chunk)
                        task.received += len(chunk)
                        if on_progress:
                            on_progress(task.received, task.total)

                # A closed response can end the stream early instead of raising
                token.raise_if_canceled()
                if task.total is not None and task.received < task.total:
                    raise aiohttp.ClientPayloadError(
                        f"Connection closed after {task.received} of "
                        f"{task.total} bytes."
                    )
            finally:
                unregister()
                task.response = None

        log.debug(
            f"Downloaded '{task.destination.name}' ({task.received} bytes, "
            f"{task.content_type})."
        )
        return task.content_type or "application/octet-stream"
