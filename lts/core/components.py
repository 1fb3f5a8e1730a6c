"""
コンポーネントテスト検証 - テストアプリの結果ウィジェットを読み取る

フロントドアログインでテストアプリを開き、ページ内のテスト実行が
完了して結果要素が描画されるのを待ち、失敗件数が 0 であることを検証する。

結果要素（デフォルト id: run_results_tap）の属性:
  - data-failure-count: 失敗件数
  - data-total-count: 総件数

補助情報（取得できなければ無視する）:
  - 詳細要素（デフォルト id: run_results_full）: テスト毎の結果 JSON
  - .jasmine-duration: 実行時間のテキスト（例: "finished in 3.2s"）
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from selenium.webdriver.common.by import By

from ..errors import ComponentTestFailure
from .session import login
from .waits import presence_of_element, url_contains, wait_for

if TYPE_CHECKING:
    from ..config.schema import RunConfig
    from .session import BrowserSession

logger = logging.getLogger(__name__)

_DURATION_PATTERN = re.compile(r"([0-9.]+)")
_DURATION_SELECTOR = ".jasmine-duration"


# ---------------------------------------------------------------------------
# 結果データクラス
# ---------------------------------------------------------------------------

@dataclass
class ComponentResult:
    """テストアプリが報告した個々のコンポーネントテストの結果。

    Attributes:
        full_name: テスト名
        outcome: 結果（Pass / Fail / Skip 等、ページの値そのまま）
        message: 失敗メッセージ
        run_time_ms: 実行時間（ミリ秒）
    """

    full_name: str
    outcome: str
    message: Optional[str] = None
    run_time_ms: Optional[float] = None

    @property
    def passed(self) -> bool:
        return self.outcome == "Pass"


@dataclass
class ComponentSummary:
    """結果要素から読み取った集計。

    Attributes:
        failure_count: data-failure-count の値
        total_count: data-total-count の値
        app_url: テストアプリの URL
        duration_ms: ページが報告した実行時間（ミリ秒）
        results: テスト毎の結果（詳細要素がある場合のみ）
    """

    failure_count: Optional[str]
    total_count: Optional[str]
    app_url: str
    duration_ms: Optional[float] = None
    results: list[ComponentResult] = field(default_factory=list)

    @property
    def failed(self) -> Optional[int]:
        return _to_int(self.failure_count)

    @property
    def total(self) -> Optional[int]:
        return _to_int(self.total_count)


# ---------------------------------------------------------------------------
# テストケース本体
# ---------------------------------------------------------------------------

def run_component_tests(session: BrowserSession, config: RunConfig) -> ComponentSummary:
    """テストアプリを実行し、失敗件数が 0 であることを検証する。

    Args:
        session: アクティブなブラウザセッション
        config: 実行設定

    Returns:
        結果要素から読み取った集計

    Raises:
        WaitTimeoutError: テストアプリへの遷移、または結果要素の出現がタイムアウトした場合
        ComponentTestFailure: 失敗件数が 0 でない場合
    """
    app_path = config.app_path
    app_url = config.app_url

    login(session, config, ret_url=app_path)
    driver = session.driver

    wait_for(
        driver,
        url_contains(app_path),
        config.url_timeout,
        config.poll_interval,
        f"コンポーネントテストの実行要求に失敗しました（{app_path} に遷移しませんでした）",
        url=app_url,
    )
    logger.info("%s を読み込みました。テスト実行の完了を待機しています...", app_path)

    element = wait_for(
        driver,
        presence_of_element(By.ID, config.results_element_id),
        config.results_timeout,
        config.poll_interval,
        f"コンポーネントテストの実行がタイムアウトしました。"
        f"テスト組織で {app_url} を開いて確認してください",
        url=app_url,
    )

    summary = ComponentSummary(
        failure_count=element.get_attribute("data-failure-count"),
        total_count=element.get_attribute("data-total-count"),
        app_url=app_url,
        duration_ms=extract_duration(driver),
        results=extract_component_results(driver, config.detail_element_id),
    )
    logger.info(
        "コンポーネントテスト結果: 失敗 %s / 全 %s 件",
        summary.failure_count, summary.total_count,
    )

    if summary.failure_count != "0":
        raise ComponentTestFailure(
            f"{summary.failure_count}/{summary.total_count} 件のコンポーネントテストが"
            f"失敗しました。詳細は {app_url} を確認してください",
            failed=summary.failure_count,
            total=summary.total_count,
            url=app_url,
            summary=summary,
        )

    return summary


# ---------------------------------------------------------------------------
# 補助情報の抽出
# ---------------------------------------------------------------------------

def extract_component_results(driver: Any, element_id: str) -> list[ComponentResult]:
    """詳細要素の JSON からテスト毎の結果を抽出する。

    要素がない、または JSON として解釈できない場合は空リストを返す。

    Args:
        driver: ドライバ
        element_id: 詳細要素の id

    Returns:
        テスト毎の結果リスト（テスト名順）
    """
    elements = driver.find_elements(By.ID, element_id)
    if not elements:
        return []

    raw = elements[0].get_attribute("innerHTML") or ""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        logger.warning("詳細結果の JSON を解釈できません (#%s): %s", element_id, exc)
        return []

    tests = data.get("tests") if isinstance(data, dict) else None
    if not isinstance(tests, list):
        logger.warning("詳細結果に tests がありません (#%s)", element_id)
        return []

    results = []
    for test in tests:
        if not isinstance(test, dict):
            continue
        results.append(
            ComponentResult(
                full_name=str(test.get("FullName", "")),
                outcome=str(test.get("Outcome", "")),
                message=test.get("Message"),
                run_time_ms=test.get("RunTime"),
            )
        )
    results.sort(key=lambda r: r.full_name.upper())
    return results


def extract_duration(driver: Any) -> Optional[float]:
    """.jasmine-duration のテキストから実行時間（ミリ秒）を抽出する。"""
    elements = driver.find_elements(By.CSS_SELECTOR, _DURATION_SELECTOR)
    if not elements:
        return None

    match = _DURATION_PATTERN.search(elements[0].text or "")
    if match is None:
        return None
    try:
        return float(match.group(1)) * 1000
    except ValueError:
        return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
