import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

# ===========================
# Configuration
# ===========================
MAX_REDIRECTS = 5  # 最多内部跟随5次跳转


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_timeout(name: str) -> Optional[float]:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    return float(value)


def _env_list(name: str) -> Tuple[str, ...]:
    return tuple(t.strip() for t in os.environ.get(name, "").split(",") if t.strip())


@dataclass(frozen=True)
class Settings:
    """Process-wide proxy settings, built once at startup."""

    prefix: str = "/"
    use_jsdelivr: bool = False
    white_list: Tuple[str, ...] = field(default_factory=tuple)  # empty = allow all
    timeout: Optional[float] = None
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def prefix_path(self) -> str:
        return self.prefix if self.prefix.endswith("/") else f"{self.prefix}/"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            prefix=os.environ.get("GHPROXY_PREFIX", "/"),
            use_jsdelivr=_env_bool("GHPROXY_USE_JSDELIVR"),
            white_list=_env_list("GHPROXY_WHITE_LIST"),
            timeout=_env_timeout("GHPROXY_TIMEOUT"),
            log_level=os.environ.get("GHPROXY_LOG_LEVEL", "INFO").upper(),
            host=os.environ.get("GHPROXY_HOST", "127.0.0.1"),
            port=int(os.environ.get("GHPROXY_PORT", "8000")),
        )

    def is_whitelisted(self, url: str) -> bool:
        if not self.white_list:
            return True
        return any(token in url for token in self.white_list)
