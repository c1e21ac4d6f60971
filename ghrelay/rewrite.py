from typing import Optional

from ghrelay.normalize import ensure_https, safe_url

JSDELIVR_BASE = "https://cdn.jsdelivr.net/gh"
RAW_HOSTS = ("raw.githubusercontent.com", "raw.github.com")


def _segments(path: str):
    return [p for p in path.split("/") if p]


def to_raw_github(target: str) -> Optional[str]:
    """Convert a GitHub blob URL into its /raw/ equivalent"""
    parts = safe_url(ensure_https(target))
    if parts is None:
        return None
    if parts.hostname != "github.com":
        return parts.geturl()

    segs = _segments(parts.path)
    if len(segs) < 4:
        return parts.geturl()

    user, repo, kind, branch, *rest = segs
    if kind == "blob":
        path = "/".join([user, repo, "raw", branch] + rest)
        parts = parts._replace(path=f"/{path}")
    return parts.geturl()


def to_jsdelivr_url(target: str) -> Optional[str]:
    """Map a blob/raw URL onto the jsDelivr GitHub mirror, or None if it can't be mapped"""
    parts = safe_url(ensure_https(target))
    if parts is None:
        return None

    segs = _segments(parts.path)
    if parts.hostname == "github.com":
        if len(segs) < 4:
            return None
        user, repo, kind, branch, *rest = segs
        if kind not in ("blob", "raw"):
            return None
    elif parts.hostname in RAW_HOSTS:
        if len(segs) < 3:
            return None
        user, repo, branch, *rest = segs
    else:
        return None

    return f"{JSDELIVR_BASE}/{user}/{repo}@{branch}/{'/'.join(rest)}"
