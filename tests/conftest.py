import asyncio
import gzip
from typing import Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from xml_nexus.fetcher import Fetcher
from xml_nexus.models import ScannerConfig
from xml_nexus.scanner import SitemapScanner

SITEMAP_NS = 'http://www.sitemaps.org/schemas/sitemap/0.9'


def urlset(*locs: str) -> str:
    entries = ''.join(f'<url><loc>{loc}</loc></url>' for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{SITEMAP_NS}">{entries}</urlset>'


def sitemapindex(*locs: str) -> str:
    entries = ''.join(f'<sitemap><loc>{loc}</loc></sitemap>' for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{SITEMAP_NS}">{entries}</sitemapindex>'


class FakeSite:
    """In-memory HTTP origin served through httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes, Dict[str, str]]] = {}
        self.requests: List[Tuple[str, str]] = []
        self.delay = 0.0
        self.active = 0
        self.max_active = 0

    def add(self, url: str, body, status: int = 200, headers: Optional[Dict[str, str]] = None,
            compress: bool = False):
        if isinstance(body, str):
            body = body.encode('utf-8')
        if compress:
            body = gzip.compress(body)
        self.routes[url] = (status, body, headers or {'content-type': 'application/xml'})

    def fetched(self, url: str) -> int:
        return sum(1 for method, requested in self.requests if requested == url and method == 'GET')

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1

        if url not in self.routes:
            return httpx.Response(404, content=b'not found')

        status, body, headers = self.routes[url]
        if request.method == 'HEAD':
            body = b''
        return httpx.Response(status, content=body, headers=headers)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest_asyncio.fixture
async def client(site):
    async with httpx.AsyncClient(transport=httpx.MockTransport(site.handler)) as client:
        yield client


@pytest.fixture
def make_scanner(client):
    def factory(**overrides) -> SitemapScanner:
        config = ScannerConfig(**overrides)
        return SitemapScanner(config, Fetcher(config, client))
    return factory
