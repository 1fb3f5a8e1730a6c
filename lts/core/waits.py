"""
待機戦略 - 非同期に描画されるページのためのポーリング待機

ブラウザ上のアプリはクライアント側の処理完了後に要素を描画するため、
ページからの通知はなく、一定間隔のポーリングで条件成立を待つ。

主な機能:
  - wait_for: 条件関数が真を返すまで一定間隔で再評価する
  - url_contains / presence_of_element: よく使う条件関数
  - find_when_present: バックエンドごとのデフォルト秒数で要素を待機する

呼び出し元スレッドをブロックする。キャンセルはタイムアウトのみ。
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from selenium.common.exceptions import NoSuchElementException

from ..errors import WaitTimeoutError

if TYPE_CHECKING:
    from .session import BrowserSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# ポーリング待機
# ---------------------------------------------------------------------------

def wait_for(
    driver: Any,
    predicate: Callable[[Any], T],
    timeout: float,
    poll_interval: float = 1.0,
    message: str = "",
    *,
    ignored_exceptions: tuple[type[BaseException], ...] = (NoSuchElementException,),
    url: Optional[str] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """条件関数が真を返すまで待機し、その戻り値を返す。

    predicate(driver) を poll_interval 秒間隔で評価する。
    ignored_exceptions に含まれる例外（「まだ見つからない」）と偽の戻り値は
    再試行の対象とし、それ以外の例外は即座に送出する。

    Args:
        driver: 条件関数に渡すドライバ
        predicate: 条件関数
        timeout: 待機する最大秒数
        poll_interval: 評価間隔（秒）
        message: タイムアウト時のエラーメッセージ
        ignored_exceptions: 再試行の対象とする例外
        url: 検証対象の URL（タイムアウト時の診断情報）
        clock: 経過時間の計測に使う時計
        sleep: 評価間の待機関数

    Returns:
        条件関数の戻り値（真と評価されるもの）

    Raises:
        WaitTimeoutError: timeout 秒以内に条件が成立しなかった場合
    """
    start = clock()
    deadline = start + timeout
    attempts = 0

    while True:
        attempts += 1
        try:
            value = predicate(driver)
            if value:
                logger.debug(
                    "待機条件が成立しました（%d 回目, %.1f 秒経過）",
                    attempts, clock() - start,
                )
                return value
        except ignored_exceptions as exc:
            logger.debug("待機条件が未成立です（%d 回目）: %s", attempts, exc)

        if clock() >= deadline:
            raise WaitTimeoutError(
                message or f"条件が {timeout} 秒以内に成立しませんでした",
                url=url,
                timeout=timeout,
            )

        sleep(poll_interval)


# ---------------------------------------------------------------------------
# 条件関数
# ---------------------------------------------------------------------------

def url_contains(fragment: str) -> Callable[[Any], bool]:
    """現在の URL が fragment を含むときに真となる条件関数を返す。"""

    def _predicate(driver: Any) -> bool:
        return fragment in (driver.current_url or "")

    return _predicate


def presence_of_element(by: str, value: str) -> Callable[[Any], Any]:
    """要素が DOM に存在するときにその要素を返す条件関数を返す。

    要素がない間は NoSuchElementException が送出され、wait_for で再試行される。
    """

    def _predicate(driver: Any) -> Any:
        return driver.find_element(by, value)

    return _predicate


def find_when_present(
    session: BrowserSession,
    by: str,
    value: str,
    timeout: Optional[float] = None,
    poll_interval: float = 1.0,
) -> Any:
    """要素が現れるまで待機して返す。

    timeout 省略時はバックエンドごとのデフォルト秒数（ヘッドレスは長め）を使用する。

    Args:
        session: アクティブなブラウザセッション
        by: ロケータ種別（selenium.webdriver.common.by.By の値）
        value: ロケータ値
        timeout: 待機する最大秒数
        poll_interval: 評価間隔（秒）

    Returns:
        見つかった要素
    """
    wait_seconds = session.wait_timeout if timeout is None else timeout
    return wait_for(
        session.driver,
        presence_of_element(by, value),
        wait_seconds,
        poll_interval,
        f"要素 {by}={value} が {wait_seconds} 秒以内に見つかりませんでした",
    )
