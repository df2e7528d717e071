"""
xml-nexus: discover, fetch and map XML sitemap hierarchies.

This module provides both a CLI interface and a scriptable async API for
walking a site's sitemap indexes down to the page URLs they list.
"""

from typing import List, Optional

from xml_nexus.config import Config, load_config
from xml_nexus.discovery import SitemapDiscovery
from xml_nexus.exceptions import (
    ScanError, FetchFailed, DecompressFailed, InvalidContent,
    UnrecognizedFormat, ParseFailed
)
from xml_nexus.fetcher import Fetcher
from xml_nexus.metadata import MetadataFetcher
from xml_nexus.models import (
    SitemapNode, ScanResult, NodeKind, PageMetadata,
    ScannerConfig, DiscoveryConfig, MetadataConfig
)
from xml_nexus.scanner import SitemapScanner
from xml_nexus.stream import stream_scan, stream_events, NO_SITEMAPS_FOUND

__version__ = "0.1.0"

__all__ = [
    # Main classes
    'SitemapScanner',
    'SitemapDiscovery',
    'Fetcher',
    'MetadataFetcher',
    'Config',

    # Models
    'SitemapNode',
    'ScanResult',
    'NodeKind',
    'PageMetadata',
    'ScannerConfig',
    'DiscoveryConfig',
    'MetadataConfig',

    # Errors
    'ScanError',
    'FetchFailed',
    'DecompressFailed',
    'InvalidContent',
    'UnrecognizedFormat',
    'ParseFailed',

    # Functions
    'load_config',
    'create_scanner',
    'scan_site',
    'stream_scan',
    'stream_events',
]


def create_scanner(config_path: Optional[str] = None, **overrides) -> SitemapScanner:
    """
    Create a configured scanner instance.

    Args:
        config_path: Path to configuration file
        **overrides: ScannerConfig fields to override (e.g. max_depth=1)

    Returns:
        Configured SitemapScanner instance

    Example:
        >>> scanner = create_scanner(max_urls=500)
        >>> result = await scanner.scan(['https://example.com/sitemap.xml'])
    """
    config = load_config(config_path)
    scanner_config = config.scanner_config.model_copy(update=overrides)
    return SitemapScanner(scanner_config)


async def scan_site(url: str, config: Optional[Config] = None) -> ScanResult:
    """
    Discover a site's sitemaps and scan them.

    Args:
        url: Site address, with or without scheme
        config: Configuration (loaded from the usual locations if None)

    Returns:
        ScanResult; when no sitemap is found it is empty with one error

    Example:
        >>> result = await scan_site('example.com')
        >>> print(f"Found {result.total_urls} URLs")
    """
    config = config or load_config()

    async with Fetcher(config.scanner_config) as fetcher:
        discovery = SitemapDiscovery(fetcher, config.discovery_config)
        roots: List[str] = await discovery.discover(url)

        if not roots:
            return ScanResult(errors=[NO_SITEMAPS_FOUND])

        scanner = SitemapScanner(config.scanner_config, fetcher)
        return await scanner.scan(roots)
