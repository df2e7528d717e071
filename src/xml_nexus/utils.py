"""Utility functions for xml-nexus."""

import re
import logging
from typing import Optional


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None):
    """
    Set up logging configuration.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        log_file: Optional log file path
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=handlers
    )

    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)


def normalize_target_url(url: str) -> str:
    """Prepend https:// to addresses typed without a scheme."""
    url = url.strip()
    if not url.startswith('http'):
        url = f"https://{url}"
    return url


def normalize_site_key(url: str) -> str:
    """
    Key under which a scanned site is stored: the URL without its scheme.

    Example:
        >>> normalize_site_key('https://example.com/blog')
        'example.com/blog'
    """
    return re.sub(r'^https?://', '', url.strip())


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., '1m 30s')
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        return f"{hours}h {minutes}m"
