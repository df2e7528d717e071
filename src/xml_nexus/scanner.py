"""Recursive, concurrent sitemap traversal engine."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from xml_nexus.aggregator import ScanAggregator
from xml_nexus.exceptions import ScanError, UnrecognizedFormat
from xml_nexus.fetcher import Fetcher
from xml_nexus.formats import (
    SitemapDocument, SitemapIndexDocument, UrlSetDocument,
    LegacyExportDocument, UnrecognizedDocument, parse_document
)
from xml_nexus.models import ScannerConfig, ScanResult, SitemapNode, NodeKind

ProgressCallback = Callable[[SitemapNode], Union[None, Awaitable[None]]]


class SitemapScanner:
    """
    Walks sitemap indexes down to their URL sets.

    Children of a sitemap index are scanned concurrently, with network fetches
    bounded by ``max_concurrent_fetches``. URL sets are materialized in
    document order. Depth and URL-count ceilings truncate silently; per-URL
    failures are recorded in ``ScanResult.errors`` and never abort the scan.
    """

    def __init__(self, config: Optional[ScannerConfig] = None,
                 fetcher: Optional[Fetcher] = None):
        """
        Initialize scanner.

        Args:
            config: Scanner configuration (defaults if None)
            fetcher: Fetcher to use; one is created on first fetch if None
        """
        self.config = config or ScannerConfig()
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self.logger = logging.getLogger(self.__class__.__name__)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def fetcher(self) -> Fetcher:
        if self._fetcher is None:
            self._fetcher = Fetcher(self.config)
        return self._fetcher

    async def scan(self, root_urls: List[str],
                   on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        """
        Scan one or more root sitemap URLs.

        Args:
            root_urls: Sitemap addresses, processed in order
            on_progress: Called with every discovered node (children stripped)

        Returns:
            ScanResult with one root node per successfully scanned root URL
        """
        state = ScanAggregator(self.config.max_urls)
        semaphore = self._create_semaphore()
        nodes = []

        for url in root_urls:
            node = await self._process_url(url, 0, state, semaphore, on_progress)
            if node is not None:
                nodes.append(node)

        result = state.finalize(nodes)
        self._log_summary(result)
        return result

    async def scan_content(self, text: Union[str, bytes], base_url: str,
                           on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        """
        Scan an already-fetched document, e.g. pasted by a user.

        Child sitemaps referenced by the content are still fetched.

        Args:
            text: Document text, or raw bytes whose own encoding declaration applies
            base_url: Address the content stands for
            on_progress: Called with every discovered node (children stripped)
        """
        state = ScanAggregator(self.config.max_urls)
        semaphore = self._create_semaphore()
        nodes = []

        if self._admit(base_url, 0, state):
            state.claim(base_url)
            document = self._load(text, base_url, state)
            if document is not None:
                node = await self._expand(document, base_url, 0, state, semaphore, on_progress)
                nodes.append(node)

        result = state.finalize(nodes)
        self._log_summary(result)
        return result

    def _create_semaphore(self) -> asyncio.Semaphore:
        return asyncio.Semaphore(max(1, self.config.max_concurrent_fetches))

    def _admit(self, url: str, depth: int, state: ScanAggregator) -> bool:
        """Whether a sitemap URL should be processed at all."""
        if state.is_visited(url):
            self.logger.debug(f"Skipping {url} (already visited)")
            return False
        if depth > self.config.max_depth:
            self.logger.debug(f"Skipping {url} (depth {depth} > {self.config.max_depth})")
            return False
        if state.is_exhausted:
            self.logger.debug(f"Skipping {url} (URL limit {self.config.max_urls} reached)")
            return False
        return True

    async def _process_url(self, url: str, depth: int, state: ScanAggregator,
                           semaphore: asyncio.Semaphore,
                           on_progress: Optional[ProgressCallback],
                           last_modified: Optional[str] = None) -> Optional[SitemapNode]:
        if not self._admit(url, depth, state):
            return None
        state.claim(url)

        self.logger.info(f"Scanning {url} (depth: {depth})")

        try:
            async with semaphore:
                payload = await self.fetcher.fetch(url)
        except ScanError as e:
            state.record_error(str(e))
            return None

        document = self._load(payload, url, state)
        if document is None:
            return None

        return await self._expand(document, url, depth, state, semaphore, on_progress, last_modified)

    def _load(self, text: Union[str, bytes], url: str, state: ScanAggregator) -> Optional[SitemapDocument]:
        """Parse and classify a document, recording any failure."""
        try:
            document = parse_document(
                text, url,
                legacy_prefix=self.config.legacy_path_prefix,
                default_extension=self.config.legacy_default_extension
            )
            if isinstance(document, UnrecognizedDocument):
                raise UnrecognizedFormat(
                    f"Invalid Sitemap format at {url}: found root element <{document.root_tag}>",
                    url,
                    root_tag=document.root_tag
                )
            return document
        except ScanError as e:
            state.record_error(str(e))
            return None

    async def _expand(self, document: SitemapDocument, url: str, depth: int,
                      state: ScanAggregator, semaphore: asyncio.Semaphore,
                      on_progress: Optional[ProgressCallback],
                      last_modified: Optional[str] = None) -> SitemapNode:
        """Build the container node for a classified document."""
        state.add_sitemap()

        if isinstance(document, SitemapIndexDocument):
            results = await asyncio.gather(*(
                self._process_url(entry.loc, depth + 1, state, semaphore, on_progress, entry.lastmod)
                for entry in document.entries
            ))
            children = [child for child in results if child is not None]
        else:
            children = await self._materialize_leaves(document, depth, state, on_progress)

        node = SitemapNode(
            url=url,
            kind=NodeKind.SITEMAP_CONTAINER,
            depth=depth,
            children=children,
            last_modified=last_modified
        )
        # Containers are reported once their subtree is complete
        await self._emit(on_progress, node.without_children())
        return node

    async def _materialize_leaves(self, document: Union[UrlSetDocument, LegacyExportDocument],
                                  depth: int, state: ScanAggregator,
                                  on_progress: Optional[ProgressCallback]) -> List[SitemapNode]:
        leaves = []

        for entry in document.entries:
            if state.is_exhausted:
                self.logger.info(f"Reached max URLs limit ({self.config.max_urls})")
                break
            if not state.claim(entry.loc):
                continue

            state.add_url()
            leaf = SitemapNode(
                url=entry.loc,
                kind=NodeKind.LEAF_URL,
                depth=depth + 1,
                last_modified=entry.lastmod,
                change_frequency=entry.changefreq,
                priority=entry.priority
            )
            leaves.append(leaf)
            await self._emit(on_progress, leaf)

        return leaves

    @staticmethod
    async def _emit(on_progress: Optional[ProgressCallback], node: SitemapNode):
        if on_progress is None:
            return
        outcome = on_progress(node)
        if inspect.isawaitable(outcome):
            await outcome

    def _log_summary(self, result: ScanResult):
        self.logger.info(
            f"Scan completed: {len(result.nodes)} root(s), "
            f"{result.total_sitemaps} sitemaps, "
            f"{result.total_urls} URLs, "
            f"{len(result.errors)} errors"
        )

    async def close(self):
        """Close the fetcher if this scanner created it."""
        if self._owns_fetcher and self._fetcher is not None:
            await self._fetcher.close()
            self._fetcher = None
