"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for keys and URLs
handed to the engine by callers.

Security Considerations:
- Only http/https URLs are stored (no javascript:, data:, file:)
- Length limits keep a single record from blowing up scans
"""

import re
from typing import Optional
from urllib.parse import urlparse

MAX_URL_LENGTH = 2048
MAX_SHORT_KEY_LENGTH = 20

_SHORT_KEY_PATTERN = re.compile(r'^[0-9a-zA-Z]+$')
_MALICIOUS_PATTERNS = ('javascript:', 'data:', 'file:', 'vbscript:')


def sanitize_short_key(short_key: str) -> Optional[str]:
    """
    Sanitize and validate short key format.

    Short keys only contain characters from [0-9a-zA-Z].

    Args:
        short_key: The short key to sanitize

    Returns:
        Sanitized short key if valid, None otherwise
    """
    if not short_key or not isinstance(short_key, str):
        return None

    short_key = short_key.strip()

    if len(short_key) > MAX_SHORT_KEY_LENGTH:
        return None

    if not _SHORT_KEY_PATTERN.match(short_key):
        return None

    return short_key


def validate_url_length(url: str, max_length: int = MAX_URL_LENGTH) -> bool:
    """
    Validate URL length.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def is_valid_url(url: str) -> bool:
    """
    Validate URL format and scheme.

    Checks that URL uses http/https, has a host, and doesn't contain
    script-like schemes.

    Args:
        url: The URL string to validate

    Returns:
        True if valid and safe, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if not validate_url_length(url):
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if not result.scheme or not result.netloc:
        return False

    if result.scheme.lower() not in {'http', 'https'}:
        return False

    domain = result.netloc.split(':')[0]
    if domain != 'localhost' and '.' not in domain:
        return False

    url_lower = url.lower()
    if any(pattern in url_lower for pattern in _MALICIOUS_PATTERNS):
        return False

    return True
