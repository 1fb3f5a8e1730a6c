"""
設定スキーマ定義 - バックエンド種別と実行設定

ブラウザバックエンド（ローカル Selenium / ヘッドレス / クラウドファーム）と
1 回の実行に必要な設定を Pydantic v2 モデルとして定義する。
全モデルは frozen であり、解決後は実行中に変更されない。

  - LocalBackend: ローカル Selenium サーバー
  - HeadlessBackend: ローカルのヘッドレスブラウザ（バイナリパス必須）
  - CloudBackend: クラウドブラウザファーム（ユーザー名・アクセスキー必須）
  - RunConfig: 実行設定全体
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_SELENIUM_URL = "http://127.0.0.1:4444/wd/hub"
DEFAULT_CLOUD_HOST = "ondemand.saucelabs.com:80"


# ---------------------------------------------------------------------------
# バックエンド定義
# ---------------------------------------------------------------------------

class LocalBackend(BaseModel):
    """ローカル Selenium サーバーを使用するバックエンド。"""

    model_config = ConfigDict(frozen=True)

    mode: Literal["local"] = "local"
    selenium_url: str = Field(default=DEFAULT_SELENIUM_URL, description="Selenium サーバーの URL")
    default_wait_timeout: float = Field(default=10.0, gt=0, description="要素待機のデフォルト秒数")

    @property
    def command_executor(self) -> str:
        return self.selenium_url


class HeadlessBackend(BaseModel):
    """ローカルのヘッドレスブラウザを使用するバックエンド。

    ヘッドレス実行は描画完了までが遅いため、待機のデフォルト秒数を長めに取る。
    """

    model_config = ConfigDict(frozen=True)

    mode: Literal["headless"] = "headless"
    binary_path: str = Field(..., min_length=1, description="ブラウザ実行ファイルのパス")
    default_wait_timeout: float = Field(default=20.0, gt=0, description="要素待機のデフォルト秒数")
    window_width: int = 1280
    window_height: int = 1024


class CloudBackend(BaseModel):
    """クラウドブラウザファーム（SauceLabs 等）を使用するバックエンド。

    ユーザー名とアクセスキーはエンドポイント URL に埋め込まれる。
    """

    model_config = ConfigDict(frozen=True)

    mode: Literal["cloud"] = "cloud"
    username: str = Field(..., min_length=1)
    access_key: SecretStr
    host: str = Field(default=DEFAULT_CLOUD_HOST, description="ホスト名:ポート")
    default_wait_timeout: float = Field(default=10.0, gt=0, description="要素待機のデフォルト秒数")

    @property
    def command_executor(self) -> str:
        user = quote(self.username, safe="")
        key = quote(self.access_key.get_secret_value(), safe="")
        return f"http://{user}:{key}@{self.host}/wd/hub"


Backend = Annotated[
    Union[LocalBackend, HeadlessBackend, CloudBackend],
    Field(discriminator="mode"),
]
"""バックエンド種別の Union 型（mode で判別）。"""


# ---------------------------------------------------------------------------
# 実行設定
# ---------------------------------------------------------------------------

class RunConfig(BaseModel):
    """1 回の実行に必要な設定。

    Attributes:
        backend: 使用するブラウザバックエンド
        instance_url: 接続先インスタンスのベース URL
        access_token: フロントドアログイン用アクセストークン
        app_name: テストアプリ名（.app は省略可）
        url_timeout: テストアプリへの遷移を待つ秒数
        results_timeout: 結果要素の出現を待つ秒数
        poll_interval: ポーリング間隔（秒）
        results_element_id: 失敗件数・総件数を持つ結果要素の id
        detail_element_id: テスト毎の結果 JSON を持つ要素の id
        capabilities: WebDriver に追加で渡す capability
    """

    model_config = ConfigDict(frozen=True)

    backend: Backend
    instance_url: str = Field(..., min_length=1)
    access_token: SecretStr
    app_name: str = "tests"
    url_timeout: float = Field(default=30.0, gt=0)
    results_timeout: float = Field(default=180.0, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)
    results_element_id: str = "run_results_tap"
    detail_element_id: str = "run_results_full"
    capabilities: dict[str, Any] = Field(default_factory=dict)

    @field_validator("instance_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def app_path(self) -> str:
        """テストアプリのパス（例: /c/tests.app）。"""
        name = self.app_name
        if ".app" not in name:
            name += ".app"
        return f"/c/{name}"

    @property
    def app_url(self) -> str:
        """テストアプリの完全な URL。"""
        return f"{self.instance_url}{self.app_path}"

    def secret_values(self) -> set[str]:
        """ログに出してはならない値の集合を返す。"""
        secrets = {self.access_token.get_secret_value()}
        if isinstance(self.backend, CloudBackend):
            secrets.add(self.backend.access_key.get_secret_value())
        return {s for s in secrets if s}


# ---------------------------------------------------------------------------
# 秘密値マスク処理
# ---------------------------------------------------------------------------

def mask_secrets(config: RunConfig, text: str) -> str:
    """テキスト中の秘密値を *** にマスクする。

    Args:
        config: 秘密値の検出元となる実行設定
        text: マスク対象のテキスト

    Returns:
        秘密値がマスクされたテキスト
    """
    return _mask_values(text, config.secret_values())


def mask_backend_secrets(backend: LocalBackend | HeadlessBackend | CloudBackend, text: str) -> str:
    """テキスト中のバックエンドの秘密値（クラウドのアクセスキー）を *** にマスクする。

    実行設定がまだない段階（セッション確立時のエラー等）で使用する。
    """
    secrets: set[str] = set()
    if isinstance(backend, CloudBackend):
        secrets.add(backend.access_key.get_secret_value())
    return _mask_values(text, {s for s in secrets if s})


def _mask_values(text: str, secrets: set[str]) -> str:
    result = text
    for secret_val in secrets:
        result = result.replace(secret_val, "***")
        # URL に埋め込まれたエンコード済みの値も対象にする
        encoded = quote(secret_val, safe="")
        if encoded != secret_val:
            result = result.replace(encoded, "***")
    return result
