import re
from numbers import Real
from typing import Optional

# The login page is not well-formed markup, so it is scraped instead of parsed.
CSRF_TOKEN_PATTERNS = (
    re.compile(r"<input[^>]+name='token'[^>]+value='([^']+)'"),
    re.compile(r"<input[^>]*name=['\"]token['\"][^>]*value=['\"]([^'\"]+)['\"]"),
)

INFO_TOKEN_PATTERN = re.compile(r"var token='([0-9a-f]+)'")


def extract_csrf_token(html: str) -> Optional[str]:
    for pattern in CSRF_TOKEN_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def extract_info_token(html: str) -> Optional[str]:
    match = INFO_TOKEN_PATTERN.search(html)
    return match.group(1) if match else None


def get_string(data: dict, key: str, default: str) -> str:
    value = data.get(key)
    if isinstance(value, str) and value != "":
        return value
    return default


def get_number(data: dict, key: str) -> Optional[float]:
    """Numeric JSON value as float; booleans and strings count as absent."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return float(value)


def normalize_host(host: str) -> str:
    if not host.startswith(("http://", "https://")):
        host = f"http://{host}"
    return host.rstrip("/")
