from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_REGION = "us-east-1"
DEFAULT_ADDRESSING_STYLE = "path"
ADDRESSING_STYLES: tuple[str, ...] = ("path", "virtual", "auto")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_optional_bool(value: str | None) -> bool | None:
    if value is None or not value.strip():
        return None
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_optional_str(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class StoreConfig:
    """Credentials and location of the bucket backing an S3Storage."""

    access_key_id: str | None
    secret_access_key: str | None
    bucket: str
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    addressing_style: str = DEFAULT_ADDRESSING_STYLE
    use_ssl: bool | None = None

    def __post_init__(self) -> None:
        if not self.bucket:
            raise ValueError("bucket is required")
        if not self.region:
            raise ValueError("region is required")
        style = self.addressing_style.strip().lower()
        if style not in ADDRESSING_STYLES:
            raise ValueError(
                f"addressing_style must be one of {', '.join(ADDRESSING_STYLES)}, "
                f"got {self.addressing_style!r}"
            )
        object.__setattr__(self, "addressing_style", style)

    def __repr__(self) -> str:
        return (
            f"StoreConfig(bucket={self.bucket!r}, region={self.region!r}, "
            f"endpoint_url={self.endpoint_url!r}, "
            f"addressing_style={self.addressing_style!r}, use_ssl={self.use_ssl!r})"
        )

    @property
    def resolved_use_ssl(self) -> bool:
        if self.use_ssl is not None:
            return self.use_ssl
        if self.endpoint_url:
            return self.endpoint_url.lower().startswith("https://")
        return True

    @classmethod
    def from_environment(cls) -> "StoreConfig":
        _load_env_file()
        return cls(
            access_key_id=_as_optional_str(os.environ.get("S3_ACCESS_KEY_ID")),
            secret_access_key=_as_optional_str(
                os.environ.get("S3_SECRET_ACCESS_KEY")
            ),
            bucket=(os.environ.get("S3_BUCKET") or "").strip(),
            region=(os.environ.get("S3_REGION") or DEFAULT_REGION).strip(),
            endpoint_url=_as_optional_str(os.environ.get("S3_ENDPOINT_URL")),
            addressing_style=os.environ.get(
                "S3_ADDRESSING_STYLE", DEFAULT_ADDRESSING_STYLE
            ),
            use_ssl=_as_optional_bool(os.environ.get("S3_USE_SSL")),
        )


@lru_cache(maxsize=1)
def get_config() -> StoreConfig:
    return StoreConfig.from_environment()
