"""
Validation of media src attributes found in located tags
"""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

DANGEROUS_PROTOCOLS = [
    'javascript:', 'data:', 'vbscript:', 'file:',
    'about:', 'chrome:', 'jar:', 'wyciwyg:',
]

DYNAMIC_PATTERNS = [
    re.compile(r'\$\{'),               # template literal
    re.compile(r'\$\('),               # command substitution
    re.compile(r'<\?php', re.IGNORECASE),
    re.compile(r'<%'),                 # ASP/JSP
    re.compile(r'@@'),                 # Angular expression
    re.compile(r'\[\['),               # Vue expression
]

_LOCAL_PATH_CHARS = re.compile(r'^[a-zA-Z0-9/_.\-~]+$')


def validate_media_src(src: str) -> Tuple[bool, Optional[str]]:
    """
    Check a src attribute for dangerous protocols and patterns

    Args:
        src: Raw src attribute value

    Returns:
        (valid, reason) - reason is None when the src is valid
    """
    lower_src = src.lower()
    for protocol in DANGEROUS_PROTOCOLS:
        if lower_src.startswith(protocol):
            return False, f"Dangerous protocol: {protocol}"

    is_http = lower_src.startswith('http://') or lower_src.startswith('https://')
    if src.startswith('\\\\') or (src.startswith('//') and not is_http):
        return False, "UNC paths not supported"

    for pattern in DYNAMIC_PATTERNS:
        if pattern.search(src):
            return False, "Dynamic expression detected"

    if is_http:
        parsed = urlparse(src)
        if not parsed.netloc or ' ' in src:
            return False, "Invalid URL format"
        return True, None

    if not _LOCAL_PATH_CHARS.match(src):
        return False, "Invalid characters in path"

    return True, None
