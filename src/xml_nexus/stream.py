"""
Newline-delimited JSON streaming of scan progress.

Each line is one event:

    {"type": "info", "message": "Checking robots.txt..."}
    {"type": "node", "data": {...node without children...}}
    {"type": "error", "error": "No sitemaps found via robots.txt or heuristics."}
    {"type": "complete", "result": {...full ScanResult...}}

The complete event carries the authoritative tree and supersedes whatever a
consumer assembled from earlier node events.
"""

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import aiofiles
import httpx

from xml_nexus.config import Config
from xml_nexus.discovery import SitemapDiscovery
from xml_nexus.fetcher import Fetcher
from xml_nexus.models import (
    StreamEvent, NodeEvent, InfoEvent, ErrorEvent, CompleteEvent, SitemapNode
)
from xml_nexus.scanner import SitemapScanner

logger = logging.getLogger(__name__)

NO_SITEMAPS_FOUND = 'No sitemaps found via robots.txt or heuristics.'


def encode_event(event: StreamEvent) -> str:
    """Serialize one event as an NDJSON line."""
    return event.model_dump_json(by_alias=True, exclude_none=True) + "\n"


async def stream_events(url: str, content: Optional[Union[str, bytes]] = None,
                        config: Optional[Config] = None,
                        client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[StreamEvent]:
    """
    Run a scan and yield its events as they happen.

    Args:
        url: Site address; discovery runs unless content is given
        content: Already-fetched sitemap text or bytes, scanned as if fetched from url
        config: Configuration (defaults if None)
        client: Shared HTTP client, mainly for tests

    Yields:
        Stream events, ending with exactly one complete or error event
    """
    config = config or Config()
    queue: asyncio.Queue = asyncio.Queue()
    done = object()

    async def on_progress(node: SitemapNode):
        await queue.put(NodeEvent(data=node.without_children()))

    async def run():
        try:
            async with Fetcher(config.scanner_config, client) as fetcher:
                scanner = SitemapScanner(config.scanner_config, fetcher)

                if content is not None:
                    await queue.put(InfoEvent(message="Parsing provided content..."))
                    result = await scanner.scan_content(content, url, on_progress)
                else:
                    await queue.put(InfoEvent(message="Checking robots.txt..."))
                    discovery = SitemapDiscovery(fetcher, config.discovery_config)
                    roots = await discovery.discover(url)
                    if not roots:
                        await queue.put(ErrorEvent(error=NO_SITEMAPS_FOUND))
                        return
                    await queue.put(InfoEvent(message=f"Found {len(roots)} sitemap(s): {', '.join(roots)}"))
                    result = await scanner.scan(roots, on_progress)

                await queue.put(CompleteEvent(result=result))
        except Exception as e:
            logger.exception(f"Scan error: {e}")
            await queue.put(ErrorEvent(error=str(e) or type(e).__name__))
        finally:
            await queue.put(done)

    task = asyncio.create_task(run())
    try:
        while True:
            event = await queue.get()
            if event is done:
                break
            yield event
    finally:
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def stream_scan(url: str, content: Optional[Union[str, bytes]] = None,
                      config: Optional[Config] = None,
                      client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[str]:
    """Like stream_events, but yields encoded NDJSON lines."""
    async for event in stream_events(url, content, config, client):
        yield encode_event(event)


async def write_ndjson(lines: AsyncIterator[str], path: Union[str, Path]) -> int:
    """
    Write an NDJSON stream to a file as it is produced.

    Returns:
        Number of lines written
    """
    count = 0
    async with aiofiles.open(path, 'w', encoding='utf-8') as f:
        async for line in lines:
            await f.write(line)
            await f.flush()
            count += 1
    return count
