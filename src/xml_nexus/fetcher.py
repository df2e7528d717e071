"""HTTP fetcher for sitemap payloads with transparent gzip handling."""

import gzip
import zlib
import logging
from typing import Optional

import httpx

from xml_nexus.models import ScannerConfig
from xml_nexus.exceptions import FetchFailed, DecompressFailed

GZIP_MAGIC = b'\x1f\x8b'


def _reason(error: Exception) -> str:
    # httpx timeouts often carry an empty message
    return str(error) or type(error).__name__


class Fetcher:
    """Fetches raw sitemap payloads over HTTP."""

    def __init__(self, config: Optional[ScannerConfig] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize fetcher.

        Args:
            config: Scanner configuration (defaults if None)
            client: Shared HTTP client; the fetcher creates and owns one if None
        """
        self.config = config or ScannerConfig()
        self._owns_client = client is None
        self.client = client or self._create_client()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _create_client(self) -> httpx.AsyncClient:
        """Create an HTTP client carrying the bot identification header."""
        return httpx.AsyncClient(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            follow_redirects=self.config.follow_redirects,
            headers={'User-Agent': self.config.user_agent}
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, url: str) -> bytes:
        """
        Fetch a URL and return its body, gunzipped when gzip-compressed.

        Args:
            url: Address to fetch

        Returns:
            Raw payload bytes

        Raises:
            FetchFailed: On non-2xx status or network error
            DecompressFailed: When a gzip payload is corrupt
        """
        self.logger.debug(f"Fetching {url}")

        try:
            response = await self.client.get(
                url,
                headers={'User-Agent': self.config.user_agent},
                timeout=self.config.timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailed(f"Error fetching {url}: {_reason(e)}", url) from e

        if not response.is_success:
            raise FetchFailed(
                f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}",
                url,
                status_code=response.status_code
            )

        return self.decompress(response.content, url)

    async def head(self, url: str, timeout: Optional[float] = None) -> httpx.Response:
        """
        Send a HEAD request.

        Raises:
            FetchFailed: On network error (HTTP status is left to the caller)
        """
        try:
            return await self.client.head(
                url,
                headers={'User-Agent': self.config.user_agent},
                timeout=timeout or self.config.timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailed(f"Error fetching {url}: {_reason(e)}", url) from e

    async def get_text(self, url: str, timeout: Optional[float] = None) -> Optional[str]:
        """GET a small text resource, returning None on any non-2xx status."""
        try:
            response = await self.client.get(
                url,
                headers={'User-Agent': self.config.user_agent},
                timeout=timeout or self.config.timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailed(f"Error fetching {url}: {_reason(e)}", url) from e

        if not response.is_success:
            self.logger.info(f"{url} answered {response.status_code}")
            return None

        return response.text

    @staticmethod
    def decompress(payload: bytes, url: Optional[str] = None) -> bytes:
        """Gunzip the payload if it starts with the gzip magic number."""
        if payload[:2] != GZIP_MAGIC:
            return payload

        try:
            return gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as e:
            raise DecompressFailed(f"Failed to decompress {url}: {e}", url) from e

    async def close(self):
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self.client.aclose()
