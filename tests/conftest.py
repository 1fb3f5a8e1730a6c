"""
テスト共通フィクスチャ

フェイクドライバ等のヘルパーは tests/helpers.py に置く。
"""

from __future__ import annotations

import pytest

from lts.config.schema import LocalBackend, RunConfig
from lts.config.settings import (
    ENV_ACCESS_TOKEN,
    ENV_BINARY_PATH,
    ENV_CLOUD_ACCESS_KEY,
    ENV_CLOUD_HOST,
    ENV_CLOUD_USERNAME,
    ENV_INSTANCE_URL,
    ENV_MODE,
    ENV_SELENIUM_URL,
)
from tests.helpers import ACCESS_TOKEN, INSTANCE_URL, FakeClock

ALL_ENV_KEYS = (
    ENV_MODE,
    ENV_SELENIUM_URL,
    ENV_BINARY_PATH,
    ENV_CLOUD_USERNAME,
    ENV_CLOUD_ACCESS_KEY,
    ENV_CLOUD_HOST,
    ENV_INSTANCE_URL,
    ENV_ACCESS_TOKEN,
)



# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """lts が参照する環境変数を全て削除する。"""
    for key in ALL_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def run_config() -> RunConfig:
    """ローカルバックエンド・短い待機時間の実行設定。"""
    return RunConfig(
        backend=LocalBackend(),
        instance_url=INSTANCE_URL,
        access_token=ACCESS_TOKEN,
        url_timeout=0.2,
        results_timeout=0.2,
        poll_interval=0.01,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
