import re
from typing import Optional
from urllib.parse import SplitResult, urlsplit

# uvicorn 等会把 // 合并成 /，这里统一修复为 https://
_scheme_prefix = re.compile(r"^https?:/+", re.I)


def normalize_target(raw_path: str) -> str:
    """Collapse a malformed or duplicated scheme prefix into https://"""
    if not raw_path:
        return ""
    return _scheme_prefix.sub("https://", raw_path, count=1)


def ensure_https(url: str) -> str:
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def extract_raw_path(path: str, query: str, prefix_path: str) -> str:
    """Return whatever follows the proxy prefix, keeping the target's query string"""
    if not path.startswith(prefix_path):
        return ""
    raw = path[len(prefix_path):]
    if raw and query:
        raw = f"{raw}?{query}"
    return raw


def safe_url(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts
