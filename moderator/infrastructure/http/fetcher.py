"""
Source media download over HTTP.

Streams the response straight to the request's temp file so large videos
never sit in memory. Nothing is retried here; a failed download fails the
request.
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from moderator.core.moderation.errors import FetchError

logger = logging.getLogger(__name__)


class HttpMediaFetcher:
    """
    MediaFetcher implementation using httpx.

    Pass a client to share a connection pool (or a mock transport in
    tests); otherwise a client is created per fetch.
    """

    DEFAULT_TIMEOUT = 300.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def fetch(self, url: str, destination: Path) -> int:
        if self._client is not None:
            return await self._fetch_with(self._client, url, destination)

        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            return await self._fetch_with(client, url, destination)

    async def _fetch_with(
        self,
        client: httpx.AsyncClient,
        url: str,
        destination: Path,
    ) -> int:
        try:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    raise FetchError(
                        f"Failed to download URL. HTTP Status: {response.status_code}",
                        reason=FetchError.STATUS,
                        status_code=response.status_code,
                    )
                return await self._write_body(response, destination)
        except FetchError:
            raise
        except httpx.RequestError as e:
            # transport failures and redirect loops alike
            logger.warning("Download failed", extra={"url": url, "error": str(e)})
            raise FetchError(f"Error downloading URL: {e}", reason=FetchError.TRANSPORT)
        except httpx.InvalidURL as e:
            raise FetchError(f"Error downloading URL: {e}", reason=FetchError.TRANSPORT)

    async def _write_body(self, response: httpx.Response, destination: Path) -> int:
        written = 0
        try:
            with open(destination, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    written += len(chunk)
        except (httpx.HTTPError, OSError) as e:
            logger.warning(
                "Failed reading download body",
                extra={"url": str(response.url), "error": str(e)},
            )
            raise FetchError(f"Error reading response: {e}", reason=FetchError.BODY)
        return written
