"""
実行設定の解決 - 上書き値・環境変数からの設定読み込み

上書き値（CLI --set / 設定ファイルの settings）> 環境変数 の優先順位で
設定値を解決し、RunConfig を生成する。空文字列は未指定として扱う。

必須・任意の区別は呼び出し側で明示する:
  - SettingSources.require(): 未指定なら ConfigurationError
  - SettingSources.optional(): 未指定なら default（None）

環境変数一覧:
  WEBKIT_MODE              : バックエンド種別（LOCAL / HEADLESS / CLOUD、デフォルト: LOCAL）
                             PHANTOM は HEADLESS、SAUCELABS は CLOUD の別名
  SELENIUM_URL             : ローカル Selenium サーバーの URL（任意）
  PHANTOM_BINARY_PATH      : ヘッドレスブラウザのバイナリパス（HEADLESS 時必須）
  SAUCE_USERNAME           : クラウドファームのユーザー名（CLOUD 時必須）
  SAUCE_ACCESS_KEY         : クラウドファームのアクセスキー（CLOUD 時必須）
  SAUCE_HOST               : クラウドファームのホスト名:ポート（任意）
  SALESFORCE_INSTANCE_URL  : インスタンスのベース URL（必須）
  SALESFORCE_ACCESS_TOKEN  : アクセストークン（必須）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError
from .schema import (
    DEFAULT_CLOUD_HOST,
    DEFAULT_SELENIUM_URL,
    CloudBackend,
    HeadlessBackend,
    LocalBackend,
    RunConfig,
)

if TYPE_CHECKING:
    from .file import FileConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 設定キー定数
# ---------------------------------------------------------------------------

ENV_MODE = "WEBKIT_MODE"
ENV_SELENIUM_URL = "SELENIUM_URL"
ENV_BINARY_PATH = "PHANTOM_BINARY_PATH"
ENV_CLOUD_USERNAME = "SAUCE_USERNAME"
ENV_CLOUD_ACCESS_KEY = "SAUCE_ACCESS_KEY"
ENV_CLOUD_HOST = "SAUCE_HOST"
ENV_INSTANCE_URL = "SALESFORCE_INSTANCE_URL"
ENV_ACCESS_TOKEN = "SALESFORCE_ACCESS_TOKEN"

# モード文字列 → バックエンド種別
_MODE_ALIASES = {
    "LOCAL": "local",
    "HEADLESS": "headless",
    "PHANTOM": "headless",
    "CLOUD": "cloud",
    "SAUCELABS": "cloud",
}


# ---------------------------------------------------------------------------
# 設定値の取得元
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SettingSources:
    """設定値の取得元（上書き値と環境変数）。

    Attributes:
        overrides: 明示的な上書き値（環境変数より優先）
        environ: 環境変数マッピング（デフォルト: os.environ）
    """

    overrides: Mapping[str, str] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    def _lookup(self, name: str) -> Optional[str]:
        value = self.overrides.get(name)
        if not value:
            value = self.environ.get(name)
        return value or None

    def require(self, name: str) -> str:
        """必須設定を取得する。

        Args:
            name: 設定キー

        Returns:
            設定値

        Raises:
            ConfigurationError: 上書き値にも環境変数にも値がない場合
        """
        value = self._lookup(name)
        if value is None:
            raise ConfigurationError(f"設定 '{name}' が指定されていません", key=name)
        return value

    def optional(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """任意設定を取得する。未指定の場合は default を返す。"""
        value = self._lookup(name)
        if value is None:
            logger.debug("任意設定 '%s' は未指定です", name)
            return default
        return value


# ---------------------------------------------------------------------------
# 解決処理
# ---------------------------------------------------------------------------

def parse_mode(value: Optional[str]) -> str:
    """モード文字列をバックエンド種別に変換する。

    Args:
        value: WEBKIT_MODE の値（None / 空文字列は LOCAL）

    Returns:
        "local" / "headless" / "cloud"

    Raises:
        ConfigurationError: 未知のモードの場合
    """
    if not value:
        return "local"
    mode = _MODE_ALIASES.get(value.strip().upper())
    if mode is None:
        raise ConfigurationError(
            f"{ENV_MODE} の値が不正です: {value}"
            f"（{' / '.join(sorted(_MODE_ALIASES))} のいずれか）",
            key=ENV_MODE,
        )
    return mode


def resolve_backend(sources: SettingSources) -> LocalBackend | HeadlessBackend | CloudBackend:
    """バックエンド種別ごとの必須設定を検証し、バックエンド定義を生成する。

    セッション生成より前に呼ばれ、必須設定の欠落はここで検出される。

    Args:
        sources: 設定値の取得元

    Returns:
        バックエンド定義
    """
    mode = parse_mode(sources.optional(ENV_MODE))

    if mode == "headless":
        return HeadlessBackend(binary_path=sources.require(ENV_BINARY_PATH))

    if mode == "cloud":
        return CloudBackend(
            username=sources.require(ENV_CLOUD_USERNAME),
            access_key=sources.require(ENV_CLOUD_ACCESS_KEY),
            host=sources.optional(ENV_CLOUD_HOST, DEFAULT_CLOUD_HOST),
        )

    return LocalBackend(
        selenium_url=sources.optional(ENV_SELENIUM_URL, DEFAULT_SELENIUM_URL),
    )


def load_run_config(
    overrides: Optional[Mapping[str, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    file_config: Optional[FileConfig] = None,
    **params: Any,
) -> RunConfig:
    """上書き値・設定ファイル・環境変数から RunConfig を生成する。

    優先順位: overrides > file_config.settings > environ。
    params（app_name, results_timeout 等）は設定ファイルの値より優先する。
    None の params は無視する。

    Args:
        overrides: CLI 等からの明示的な上書き値
        environ: 環境変数マッピング（None で os.environ）
        file_config: 設定ファイルの内容
        **params: RunConfig のフィールドへの直接指定

    Returns:
        解決済みの実行設定

    Raises:
        ConfigurationError: 必須設定の欠落または値が不正な場合
    """
    merged: dict[str, str] = {}
    fields: dict[str, Any] = {}
    if file_config is not None:
        merged.update(file_config.settings)
        fields.update(file_config.run_fields())
    if overrides:
        merged.update(overrides)
    fields.update({k: v for k, v in params.items() if v is not None})

    sources = SettingSources(
        overrides=merged,
        environ=os.environ if environ is None else environ,
    )

    try:
        backend = resolve_backend(sources)
        config = RunConfig(
            backend=backend,
            instance_url=sources.require(ENV_INSTANCE_URL),
            access_token=sources.require(ENV_ACCESS_TOKEN),
            **fields,
        )
    except PydanticValidationError as exc:
        raise ConfigurationError(f"設定値が不正です: {exc}") from exc

    logger.info(
        "設定を読み込みました: mode=%s, instance=%s, app=%s",
        config.backend.mode, config.instance_url, config.app_path,
    )
    return config


def parse_overrides(pairs: Iterable[str]) -> dict[str, str]:
    """KEY=VALUE 形式の文字列リストを辞書に変換する。

    Args:
        pairs: KEY=VALUE 形式の文字列

    Returns:
        上書き値の辞書

    Raises:
        ConfigurationError: 形式が不正な場合
    """
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"--set の形式が不正です: {pair}（KEY=VALUE）")
        result[key.strip()] = value
    return result
