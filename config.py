"""Configuration file for xml-nexus."""

# Sitemap fetching and traversal
SCANNER_CONFIG = {
    'user_agent': 'XML-Nexus-Bot/1.0',
    'timeout': 5.0,
    'max_depth': 3,
    'max_urls': 10000,
    'max_concurrent_fetches': 5,
    'verify_ssl': True,
    'follow_redirects': True,
    'legacy_path_prefix': '/content',
    'legacy_default_extension': '.html',
}

# Root sitemap discovery
DISCOVERY_CONFIG = {
    'use_robots': True,
    'robots_timeout': 10.0,
    'probe_timeout': 5.0,
    'probe_paths': ['/sitemap.xml', '/sitemap_index.xml', '/sitemap-main.xml', '/wp-sitemap.xml'],
}

# Page metadata scraping
METADATA_CONFIG = {
    'browser_profile': 'chrome120',
    'timeout': 10.0,
    'user_agent': 'XML-Nexus-Bot/1.0 (SEO Analyzer)',
}

# Custom settings
CUSTOM = {
}
