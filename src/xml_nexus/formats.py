"""
Sitemap document parsing and dialect detection using lxml.

Raw text is turned into an lxml element tree with a recovering parser, then
classified into one of the known document shapes:

    SitemapIndexDocument  <sitemapindex> listing further sitemap documents
    UrlSetDocument        <urlset> listing terminal page URLs
    LegacyExportDocument  any other root carrying JSON attributes with page paths
    UnrecognizedDocument  nothing usable found; remembers the root tag

Repeated elements always come back as lists, however many there are.
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Iterator, Any, Union
from urllib.parse import urlparse, urljoin

from lxml import etree

from xml_nexus.exceptions import InvalidContent, ParseFailed

logger = logging.getLogger(__name__)

LEGACY_PATH_KEY = 'path'

BYTE_ORDER_MARKS = (codecs.BOM_UTF8, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)


@dataclass
class SitemapEntry:
    """Reference to a child sitemap inside a sitemap index."""
    loc: str
    lastmod: Optional[str] = None


@dataclass
class UrlEntry:
    """A page URL entry with its optional metadata."""
    loc: str
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[float] = None


@dataclass
class SitemapIndexDocument:
    entries: List[SitemapEntry] = field(default_factory=list)


@dataclass
class UrlSetDocument:
    entries: List[UrlEntry] = field(default_factory=list)


@dataclass
class LegacyExportDocument:
    entries: List[UrlEntry] = field(default_factory=list)


@dataclass
class UnrecognizedDocument:
    root_tag: str


SitemapDocument = Union[SitemapIndexDocument, UrlSetDocument, LegacyExportDocument, UnrecognizedDocument]


def parse_document(text: Union[str, bytes], url: str, base_url: Optional[str] = None,
                   legacy_prefix: str = '/content',
                   default_extension: str = '.html') -> SitemapDocument:
    """
    Parse sitemap text and classify it.

    Args:
        text: Raw payload bytes (encoding taken from the document) or decoded text
        url: Address the text came from (used in diagnostics)
        base_url: Origin for resolving legacy export paths (defaults to url)
        legacy_prefix: Path prefix stripped from legacy export paths
        default_extension: Extension appended to extensionless legacy paths

    Returns:
        One of the SitemapDocument variants

    Raises:
        InvalidContent: If the text does not look like markup
        ParseFailed: If no element tree can be built
    """
    root = build_tree(text, url)
    root_tag = local_name(root)

    if root_tag == 'sitemapindex':
        entries = [
            SitemapEntry(loc=loc, lastmod=child_text(element, 'lastmod'))
            for element in child_elements(root, 'sitemap')
            if (loc := child_text(element, 'loc'))
        ]
        if entries:
            return SitemapIndexDocument(entries)

    elif root_tag == 'urlset':
        entries = [
            entry for entry in (_url_entry(element) for element in child_elements(root, 'url'))
            if entry is not None
        ]
        if entries:
            return UrlSetDocument(entries)

    else:
        entries = extract_legacy_entries(root, base_url or url, legacy_prefix, default_extension)
        if entries:
            return LegacyExportDocument(entries)

    logger.debug(f"No sitemap entries under <{root_tag}> at {url}")
    return UnrecognizedDocument(root_tag)


def build_tree(text: Union[str, bytes], url: str) -> etree._Element:
    """
    Build an element tree, recovering from truncated or sloppy markup.

    Bytes are handed to lxml untouched so the document's own encoding
    declaration applies. Text is already decoded, so any declaration in it
    is overridden with UTF-8.
    """
    if isinstance(text, bytes):
        payload = _skip_leading_junk(text.strip(), b'<', url)
        encoding = None
    else:
        payload = _skip_leading_junk(text.strip(), '<', url).encode('utf-8')
        encoding = 'utf-8'

    parser = etree.XMLParser(
        encoding=encoding,
        recover=True,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=True
    )

    try:
        root = etree.fromstring(payload, parser)
    except etree.XMLSyntaxError as e:
        raise ParseFailed(f"Error parsing {url}: {e}", url) from e

    if root is None:
        raise ParseFailed(f"Error parsing {url}: no root element", url)

    return root


def _skip_leading_junk(content, marker, url: str):
    """Drop anything before the first markup character."""
    if isinstance(content, bytes) and content.startswith(BYTE_ORDER_MARKS):
        return content

    start = content.find(marker)
    if start < 0:
        raise InvalidContent(f"Invalid XML at {url}", url)
    if start > 0:
        logger.debug(f"Skipping {start} leading characters before markup at {url}")
        content = content[start:]
    return content


def local_name(element: etree._Element) -> str:
    """Element tag without its namespace."""
    return etree.QName(element).localname


def child_elements(element: etree._Element, name: str) -> List[etree._Element]:
    """Direct children with the given local name, always as a list."""
    return [
        child for child in element.iterchildren(tag=etree.Element)
        if local_name(child) == name
    ]


def child_text(element: etree._Element, name: str) -> Optional[str]:
    """Stripped text of the first child with the given local name."""
    for child in child_elements(element, name):
        text = (child.text or '').strip()
        return text or None
    return None


def _url_entry(element: etree._Element) -> Optional[UrlEntry]:
    loc = child_text(element, 'loc')
    if not loc:
        return None

    return UrlEntry(
        loc=loc,
        lastmod=child_text(element, 'lastmod'),
        changefreq=child_text(element, 'changefreq'),
        priority=_parse_priority(child_text(element, 'priority'))
    )


def _parse_priority(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.info(f"Dropping non-numeric priority {value!r}")
        return None


def extract_legacy_entries(root: etree._Element, base_url: str,
                           legacy_prefix: str = '/content',
                           default_extension: str = '.html') -> List[UrlEntry]:
    """
    Walk every element looking for JSON-encoded attributes with a path field.

    Content-management exports sometimes describe pages as elements whose
    attributes hold JSON blobs such as {"path": "/content/site/en/about"}.
    Each path found is turned into an absolute page URL.
    """
    entries = []
    for element in root.iter(tag=etree.Element):
        for value in element.attrib.values():
            data = _load_json_attribute(value)
            if data is None:
                continue
            for path in _find_paths(data):
                entries.append(UrlEntry(loc=normalize_legacy_path(
                    path, base_url, legacy_prefix, default_extension
                )))
    return entries


def _load_json_attribute(value: str) -> Optional[Any]:
    value = value.strip()
    if not value or value[0] not in '{[':
        return None
    try:
        return json.loads(value)
    except (ValueError, RecursionError):
        logger.debug("Ignoring attribute that is not usable JSON")
        return None


def _find_paths(data: Any) -> Iterator[str]:
    """Yield path values depth-first in document order, without recursion."""
    stack = [data]
    while stack:
        item = stack.pop()
        if isinstance(item, dict):
            path = item.get(LEGACY_PATH_KEY)
            if isinstance(path, str) and path.strip():
                yield path.strip()
            stack.extend(reversed([v for k, v in item.items() if k != LEGACY_PATH_KEY]))
        elif isinstance(item, list):
            stack.extend(reversed(item))


def normalize_legacy_path(path: str, base_url: str, legacy_prefix: str = '/content',
                          default_extension: str = '.html') -> str:
    """
    Turn a legacy export path into an absolute URL.

    Example:
        >>> normalize_legacy_path('/content/en/about', 'https://example.com/sitemap.xml')
        'https://example.com/en/about.html'
    """
    if urlparse(path).scheme in ('http', 'https'):
        return path

    if legacy_prefix and (path == legacy_prefix or path.startswith(legacy_prefix.rstrip('/') + '/')):
        path = path[len(legacy_prefix.rstrip('/')):]

    if not path.startswith('/'):
        path = '/' + path

    last_segment = path.rsplit('/', 1)[-1]
    if last_segment and '.' not in last_segment:
        path += default_extension

    parsed = urlparse(base_url)
    return urljoin(f"{parsed.scheme}://{parsed.netloc}", path)
