"""Root sitemap discovery via robots.txt and conventional paths."""

import logging
from typing import Dict, List, Optional
from urllib.parse import urlparse, urljoin

from xml_nexus.exceptions import FetchFailed
from xml_nexus.fetcher import Fetcher
from xml_nexus.models import DiscoveryConfig
from xml_nexus.utils import normalize_target_url


class SitemapDiscovery:
    """Finds the root sitemap URLs of a site."""

    def __init__(self, fetcher: Fetcher, config: Optional[DiscoveryConfig] = None):
        """
        Initialize discovery.

        Args:
            fetcher: Fetcher used for robots.txt and HEAD probes
            config: Discovery configuration (defaults if None)
        """
        self.fetcher = fetcher
        self.config = config or DiscoveryConfig()
        self.sitemap_cache: Dict[str, List[str]] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def _get_robots_url(self, url: str) -> str:
        """Get robots.txt URL for given URL."""
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}/robots.txt"

    async def discover(self, url: str) -> List[str]:
        """
        Find root sitemaps for a site.

        Sitemap directives in robots.txt win; conventional paths are only
        probed when robots.txt lists none.

        Args:
            url: Site address, with or without scheme

        Returns:
            Sitemap URLs in discovery order (possibly empty)
        """
        target = normalize_target_url(url)

        sitemaps = []
        if self.config.use_robots:
            sitemaps = await self.get_robots_sitemaps(target)

        if not sitemaps:
            sitemaps = await self.probe_common_paths(target)

        self.logger.info(f"Discovered {len(sitemaps)} sitemap(s) for {target}")
        return sitemaps

    async def get_robots_sitemaps(self, url: str) -> List[str]:
        """
        Get sitemap URLs declared in robots.txt.

        Args:
            url: Website URL

        Returns:
            List of sitemap URLs
        """
        domain = urlparse(url).netloc
        if domain in self.sitemap_cache:
            return self.sitemap_cache[domain]

        robots_url = self._get_robots_url(url)
        self.logger.info(f"Fetching robots.txt from {robots_url}")

        try:
            robots_text = await self.fetcher.get_text(robots_url, timeout=self.config.robots_timeout)
        except FetchFailed as e:
            self.logger.warning(f"Failed to fetch robots.txt from {robots_url}: {e}")
            return []

        sitemaps = parse_sitemap_directives(robots_text or '')
        for sitemap_url in sitemaps:
            self.logger.info(f"Found sitemap: {sitemap_url}")

        self.sitemap_cache[domain] = sitemaps
        return sitemaps

    async def probe_common_paths(self, url: str) -> List[str]:
        """HEAD-check conventional sitemap locations, keeping XML answers."""
        found = []

        for path in self.config.probe_paths:
            candidate = urljoin(url, path)
            try:
                response = await self.fetcher.head(candidate, timeout=self.config.probe_timeout)
            except FetchFailed as e:
                self.logger.debug(f"Probe failed for {candidate}: {e}")
                continue

            content_type = response.headers.get('content-type', '').lower()
            if response.is_success and 'xml' in content_type:
                self.logger.info(f"Found sitemap at {candidate}")
                found.append(candidate)

        return found

    def clear_cache(self):
        """Clear cached robots.txt sitemap lists."""
        self.sitemap_cache.clear()


def parse_sitemap_directives(robots_text: str) -> List[str]:
    """
    Extract Sitemap directive values from robots.txt content.

    Example:
        >>> parse_sitemap_directives("User-agent: *\\nSitemap: https://example.com/s.xml")
        ['https://example.com/s.xml']
    """
    sitemaps = []

    for line in robots_text.splitlines():
        line = line.strip()

        # Skip comments and empty lines
        if not line or line.startswith('#'):
            continue

        if line.lower().startswith('sitemap:'):
            sitemap_url = line.split(':', 1)[1].strip()
            if sitemap_url and sitemap_url not in sitemaps:
                sitemaps.append(sitemap_url)

    return sitemaps
