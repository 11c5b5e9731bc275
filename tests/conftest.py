from __future__ import annotations

import pytest

from objstore.common.config import get_config
from objstore.infra.storage.s3_client import get_storage

STORE_ENV_VARS = (
    "S3_ACCESS_KEY_ID",
    "S3_SECRET_ACCESS_KEY",
    "S3_BUCKET",
    "S3_REGION",
    "S3_ENDPOINT_URL",
    "S3_ADDRESSING_STYLE",
    "S3_USE_SSL",
)


@pytest.fixture(autouse=True)
def isolated_store_env(monkeypatch):
    # setenv first so monkeypatch also restores keys that a .env file adds later
    for key in STORE_ENV_VARS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    get_config.cache_clear()  # type: ignore[attr-defined]
    get_storage.cache_clear()  # type: ignore[attr-defined]
    yield
    get_config.cache_clear()  # type: ignore[attr-defined]
    get_storage.cache_clear()  # type: ignore[attr-defined]
