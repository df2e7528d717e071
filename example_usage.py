#!/usr/bin/env python3
"""
Example usage of the xml-nexus scriptable API.
"""

import asyncio

from xml_nexus import create_scanner, scan_site, stream_scan
from xml_nexus.models import SitemapNode


SAMPLE_SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
   <url>
      <loc>https://example.com/</loc>
      <lastmod>2024-01-01</lastmod>
      <changefreq>daily</changefreq>
      <priority>1.0</priority>
   </url>
   <url>
      <loc>https://example.com/about</loc>
   </url>
</urlset>"""


async def example_pasted_content():
    """Scan content that was already fetched, e.g. pasted by a user."""
    print("Pasted Content Example")
    print("-" * 40)

    async with create_scanner() as scanner:
        result = await scanner.scan_content(SAMPLE_SITEMAP, 'https://example.com')

    for node in result.iter_nodes():
        print(f"{'  ' * node.depth}{node.url} [{node.kind}]")
    print(f"Total URLs: {result.total_urls}")


async def example_progress():
    """Follow discoveries as they happen."""
    print("Progress Callback Example")
    print("-" * 40)

    def on_progress(node: SitemapNode):
        print(f"  found {node.kind}: {node.url}")

    async with create_scanner(max_urls=100) as scanner:
        await scanner.scan_content(SAMPLE_SITEMAP, 'https://example.com', on_progress)


async def example_site_scan():
    """Discover and scan a live site (network access required)."""
    print("Site Scan Example")
    print("-" * 40)

    # result = await scan_site('example.com')
    # print(f"Sitemaps: {result.total_sitemaps}, URLs: {result.total_urls}")
    # for error in result.errors:
    #     print(f"  error: {error}")

    # Stream NDJSON events instead, as a web endpoint would
    # async for line in stream_scan('example.com'):
    #     print(line, end='')


async def main():
    await example_pasted_content()
    print()
    await example_progress()
    print()
    await example_site_scan()


if __name__ == "__main__":
    asyncio.run(main())
