"""Data models for xml-nexus."""

from enum import Enum
from typing import Optional, List, Iterator, Literal, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Kinds of nodes in a sitemap hierarchy."""
    SITEMAP_CONTAINER = "sitemap"
    LEAF_URL = "url"


class BrowserProfile(str, Enum):
    """Browser profiles for impersonation."""
    CHROME = "chrome120"
    FIREFOX = "firefox120"
    SAFARI = "safari17_0"
    EDGE = "edge120"


class OutputFormat(str, Enum):
    """Supported output formats."""
    TREE = "tree"
    TABLE = "table"
    JSON = "json"
    NDJSON = "ndjson"


class WireModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-ready dict, omitting undefined fields."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class SitemapNode(WireModel):
    """A node in the discovered sitemap hierarchy."""
    url: str
    kind: NodeKind
    depth: int = Field(ge=0)
    children: Optional[List["SitemapNode"]] = None
    last_modified: Optional[str] = None
    change_frequency: Optional[str] = None
    priority: Optional[float] = None

    @property
    def is_container(self) -> bool:
        return self.kind == NodeKind.SITEMAP_CONTAINER

    def without_children(self) -> "SitemapNode":
        """Copy of this node with children stripped, for streaming."""
        return self.model_copy(update={'children': None})

    def iter_tree(self) -> Iterator["SitemapNode"]:
        """Depth-first iteration over this node and its descendants."""
        yield self
        for child in self.children or []:
            yield from child.iter_tree()


class ScanResult(WireModel):
    """Outcome of one scan invocation."""
    nodes: List[SitemapNode] = Field(default_factory=list)
    total_urls: int = 0
    total_sitemaps: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        """Nothing discovered and at least one diagnostic recorded."""
        return not self.nodes and bool(self.errors)

    def iter_nodes(self) -> Iterator[SitemapNode]:
        """Depth-first iteration over every node of every root."""
        for node in self.nodes:
            yield from node.iter_tree()


class PageMetadata(WireModel):
    """SEO metadata scraped from a single page."""
    url: str
    status_code: int
    title: str = ""
    title_length: int = 0
    description: str = ""
    description_length: int = 0
    h1: str = ""
    canonical: str = ""
    robots: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    word_count: int = 0


class NodeEvent(BaseModel):
    """A node discovered during a scan."""
    type: Literal["node"] = "node"
    data: SitemapNode


class InfoEvent(BaseModel):
    """Human-readable progress narration."""
    type: Literal["info"] = "info"
    message: str


class ErrorEvent(BaseModel):
    """Terminal scan-level failure."""
    type: Literal["error"] = "error"
    error: str


class CompleteEvent(BaseModel):
    """Authoritative final result of a scan."""
    type: Literal["complete"] = "complete"
    result: ScanResult


StreamEvent = Union[NodeEvent, InfoEvent, ErrorEvent, CompleteEvent]


class ScannerConfig(BaseModel):
    """Configuration for fetching and traversing sitemaps."""
    user_agent: str = "XML-Nexus-Bot/1.0"
    timeout: float = 5.0
    max_depth: int = 3
    max_urls: int = 10000
    max_concurrent_fetches: int = 5
    verify_ssl: bool = True
    follow_redirects: bool = True
    legacy_path_prefix: str = "/content"
    legacy_default_extension: str = ".html"


class DiscoveryConfig(BaseModel):
    """Configuration for locating root sitemaps of a site."""
    use_robots: bool = True
    robots_timeout: float = 10.0
    probe_timeout: float = 5.0
    probe_paths: List[str] = Field(default_factory=lambda: [
        "/sitemap.xml",
        "/sitemap_index.xml",
        "/sitemap-main.xml",
        "/wp-sitemap.xml",
    ])


class MetadataConfig(BaseModel):
    """Configuration for single-page metadata scraping."""
    model_config = ConfigDict(use_enum_values=True)

    browser_profile: BrowserProfile = BrowserProfile.CHROME
    timeout: float = 10.0
    user_agent: str = "XML-Nexus-Bot/1.0 (SEO Analyzer)"
