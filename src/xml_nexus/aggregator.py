"""Per-scan bookkeeping: visited URLs, counters and diagnostics."""

import logging
from typing import List, Set

from xml_nexus.models import ScanResult, SitemapNode


class ScanAggregator:
    """
    Owns the mutable state of one scan.

    A fresh aggregator is created for every scan call, so scanner instances
    can be reused without earlier visits or counts leaking into later scans.
    All mutation happens on the scan's event loop between suspension points.
    """

    def __init__(self, max_urls: int):
        self.max_urls = max_urls
        self.visited: Set[str] = set()
        self.total_urls = 0
        self.total_sitemaps = 0
        self.errors: List[str] = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def claim(self, url: str) -> bool:
        """Mark a URL visited; False if it was already seen."""
        if url in self.visited:
            return False
        self.visited.add(url)
        return True

    def is_visited(self, url: str) -> bool:
        return url in self.visited

    @property
    def is_exhausted(self) -> bool:
        """True once the URL ceiling has been reached."""
        return self.total_urls >= self.max_urls

    def add_url(self):
        self.total_urls += 1

    def add_sitemap(self):
        self.total_sitemaps += 1

    def record_error(self, message: str):
        self.logger.warning(message)
        self.errors.append(message)

    def finalize(self, nodes: List[SitemapNode]) -> ScanResult:
        """Freeze the collected state into a ScanResult."""
        return ScanResult(
            nodes=list(nodes),
            total_urls=self.total_urls,
            total_sitemaps=self.total_sitemaps,
            errors=list(self.errors)
        )
