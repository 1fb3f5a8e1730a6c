"""
エラー定義 - lts 全体で使用する例外階層

  - ConfigurationError: 必須設定の欠落・不正値
  - SessionCreationError: ブラウザセッションの確立失敗
  - WaitTimeoutError: 待機条件がタイムアウト内に満たされなかった
  - ComponentTestFailure: コンポーネントテストの失敗件数が 0 でない

ConfigurationError / SessionCreationError は実行全体を中断する。
WaitTimeoutError / ComponentTestFailure はテストケース単位で報告される。
"""

from __future__ import annotations

from typing import Any, Optional


class LtsError(Exception):
    """lts の例外基底クラス。"""


class ConfigurationError(LtsError):
    """必須設定が未指定、または設定値が不正な場合に送出される。

    Attributes:
        key: 問題のある設定キー（特定できる場合）
    """

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class SessionCreationError(LtsError):
    """リモートバックエンドに接続できない、または capability 要求が拒否された。"""


class WaitTimeoutError(LtsError, TimeoutError):
    """待機条件がタイムアウト時間内に満たされなかった。

    str(exc) は待機時に指定されたメッセージそのものを返す。

    Attributes:
        message: 失敗メッセージ
        url: 検証対象の URL（診断用）
        timeout: 待機した秒数
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.timeout = timeout

    def __str__(self) -> str:
        return self.message


class ComponentTestFailure(LtsError, AssertionError):
    """テストアプリが報告した失敗件数が 0 でない。

    Attributes:
        failed: 失敗件数（属性値そのまま）
        total: 総件数（属性値そのまま）
        url: テストアプリの URL
        summary: 読み取った集計（ComponentSummary）
    """

    def __init__(
        self,
        message: str,
        failed: Optional[str] = None,
        total: Optional[str] = None,
        url: Optional[str] = None,
        summary: Any = None,
    ) -> None:
        super().__init__(message)
        self.failed = failed
        self.total = total
        self.url = url
        self.summary = summary
