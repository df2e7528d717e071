"""Single-page SEO metadata scraping."""

import re
import logging
from typing import Optional

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException
from lxml import etree, html

from xml_nexus.exceptions import FetchFailed
from xml_nexus.models import MetadataConfig, PageMetadata


class MetadataFetcher:
    """Fetches a page with browser impersonation and extracts its SEO tags."""

    def __init__(self, config: Optional[MetadataConfig] = None,
                 session: Optional[AsyncSession] = None):
        self.config = config or MetadataConfig()
        self._owns_session = session is None
        self.session = session or AsyncSession(impersonate=self.config.browser_profile)
        self.logger = logging.getLogger(self.__class__.__name__)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, url: str) -> PageMetadata:
        """
        Fetch a page and extract its metadata.

        Args:
            url: Page address

        Returns:
            PageMetadata for the page (non-2xx pages are still analyzed)

        Raises:
            FetchFailed: On network error
        """
        try:
            response = await self.session.get(
                url,
                headers={'User-Agent': self.config.user_agent},
                timeout=self.config.timeout
            )
        except RequestException as e:
            raise FetchFailed(f"Error fetching {url}: {e}", url) from e

        return extract_metadata(response.text, url, response.status_code)

    async def close(self):
        if self._owns_session:
            await self.session.close()


def extract_metadata(content: str, url: str, status_code: int = 200) -> PageMetadata:
    """Extract title, description, headings and Open Graph tags from HTML."""
    if not content or not content.strip():
        return PageMetadata(url=url, status_code=status_code)

    try:
        tree = html.fromstring(content.encode("utf-8"), parser=html.HTMLParser(encoding="utf-8"))
    except etree.ParserError:
        return PageMetadata(url=url, status_code=status_code)

    title = _first(tree, '//title/text()')
    description = _first(tree, '//meta[@name="description"]/@content')

    body_text = ' '.join(tree.xpath('//body//text()'))
    body_text = re.sub(r'\s+', ' ', body_text).strip()

    return PageMetadata(
        url=url,
        status_code=status_code,
        title=title,
        title_length=len(title),
        description=description,
        description_length=len(description),
        h1=re.sub(r'\s+', ' ', _first_element_text(tree, '//h1')),
        canonical=_first(tree, '//link[@rel="canonical"]/@href'),
        robots=_first(tree, '//meta[@name="robots"]/@content'),
        og_title=_first(tree, '//meta[@property="og:title"]/@content'),
        og_description=_first(tree, '//meta[@property="og:description"]/@content'),
        og_image=_first(tree, '//meta[@property="og:image"]/@content'),
        word_count=len(body_text.split()) if body_text else 0
    )


def _first(tree: html.HtmlElement, selector: str) -> str:
    result = tree.xpath(selector)
    if result:
        return str(result[0]).strip()
    return ""


def _first_element_text(tree: html.HtmlElement, selector: str) -> str:
    result = tree.xpath(selector)
    if result:
        return result[0].text_content().strip()
    return ""
