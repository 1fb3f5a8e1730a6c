"""
Runner - テストスイート実行エンジン

セッションの確立、テストケースの逐次実行、リスナーへのイベント通知を組み合わせ、
RunReport を返す。グローバルな状態は持たない。

主な機能:
  - SuiteCase: 名前付きテストケース
  - CaseResult / RunReport: 実行結果データクラス
  - run_suite(): スイート実行本体

エラーの扱い:
  - ConfigurationError / SessionCreationError: テスト実行前に送出され、実行全体を中断する
  - WaitTimeoutError / ComponentTestFailure / その他の例外: テストケース単位で失敗として報告し、
    後続のテストケースは継続する
  - セッションはどの経路でも必ず終了する
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ContextManager, Iterable, Literal, Optional, Sequence

from ..errors import ComponentTestFailure, WaitTimeoutError
from .components import ComponentSummary, run_component_tests
from .session import open_session

if TYPE_CHECKING:
    from ..config.schema import RunConfig
    from .reporting import RunListener
    from .session import BrowserSession

logger = logging.getLogger(__name__)

SUITE_TITLE = "force.lightning"


# ---------------------------------------------------------------------------
# テストケース・結果データクラス
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SuiteCase:
    """スイートを構成する名前付きテストケース。

    Attributes:
        name: テストケース名（TAP 出力に使用）
        run: セッションと設定を受け取って検証を行う関数。失敗時は例外を送出する
    """

    name: str
    run: Callable[[BrowserSession, RunConfig], Any]


@dataclass
class CaseResult:
    """単一テストケースの実行結果。

    Attributes:
        name: テストケース名
        status: 実行結果（passed / failed）
        message: 失敗メッセージ（失敗時のみ）
        error_type: 失敗の種別（例外クラス名）
        duration_ms: 実行時間（ミリ秒）
    """

    name: str
    status: Literal["passed", "failed"] = "passed"
    message: Optional[str] = None
    error_type: Optional[str] = None
    duration_ms: float = 0.0


@dataclass
class RunReport:
    """スイート全体の実行結果。

    Attributes:
        suite_title: スイート名
        status: 全体結果（passed / failed）
        cases: 各テストケースの結果
        duration_ms: 全体実行時間（ミリ秒）
        started_at: 実行開始日時
        finished_at: 実行終了日時
        app_url: テストアプリの URL
        component_summary: 結果要素から読み取った集計（取得できた場合）
    """

    suite_title: str
    status: Literal["passed", "failed"] = "passed"
    cases: list[CaseResult] = field(default_factory=list)
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    app_url: Optional[str] = None
    component_summary: Optional[ComponentSummary] = None

    @property
    def passed(self) -> bool:
        return self.status == "passed"

    @property
    def total(self) -> int:
        return len(self.cases)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.cases if c.status == "failed")


def default_cases() -> list[SuiteCase]:
    """デフォルトのスイート（テストアプリの結果検証 1 件）を返す。"""
    return [SuiteCase("test_components", run_component_tests)]


# ---------------------------------------------------------------------------
# スイート実行
# ---------------------------------------------------------------------------

def run_suite(
    config: RunConfig,
    listeners: Iterable[RunListener] = (),
    cases: Optional[Sequence[SuiteCase]] = None,
    session_factory: Callable[[RunConfig], ContextManager[BrowserSession]] = open_session,
) -> RunReport:
    """スイートを実行し、結果を返す。

    セッションを 1 つ確立し、テストケースを順に実行する。
    各イベント（run_started / test_started / test_failed / test_finished / run_finished）は
    発生順にリスナーへ通知される。

    Args:
        config: 実行設定
        listeners: 実行イベントを受け取るリスナー
        cases: 実行するテストケース（None で default_cases()）
        session_factory: セッションを確立するコンテキストマネージャ

    Returns:
        スイート全体の実行結果

    Raises:
        SessionCreationError: セッションを確立できなかった場合
    """
    listeners = list(listeners)
    cases = list(default_cases() if cases is None else cases)

    report = RunReport(
        suite_title=SUITE_TITLE,
        started_at=datetime.now(),
        app_url=config.app_url,
    )
    start_time = time.perf_counter()

    with session_factory(config) as session:
        _notify(listeners, "run_started", len(cases))

        for case in cases:
            case_result = _run_case(case, session, config, listeners, report)
            report.cases.append(case_result)
            if case_result.status == "failed":
                report.status = "failed"

    report.finished_at = datetime.now()
    report.duration_ms = (time.perf_counter() - start_time) * 1000

    _notify(listeners, "run_finished", report)
    return report


def _run_case(
    case: SuiteCase,
    session: BrowserSession,
    config: RunConfig,
    listeners: list[RunListener],
    report: RunReport,
) -> CaseResult:
    """単一テストケースを実行し、結果をリスナーに通知する。"""
    case_result = CaseResult(name=case.name)
    _notify(listeners, "test_started", case.name)
    logger.info("テスト開始: %s", case.name)

    start_time = time.perf_counter()
    try:
        outcome = case.run(session, config)
        if isinstance(outcome, ComponentSummary):
            report.component_summary = outcome
    except (WaitTimeoutError, ComponentTestFailure) as exc:
        if isinstance(exc, ComponentTestFailure) and exc.summary is not None:
            report.component_summary = exc.summary
        case_result.status = "failed"
        case_result.message = str(exc)
        case_result.error_type = type(exc).__name__
        logger.error("テスト '%s' が失敗しました: %s", case.name, exc)
    except Exception as exc:
        case_result.status = "failed"
        case_result.message = f"{type(exc).__name__}: {exc}"
        case_result.error_type = type(exc).__name__
        logger.exception("テスト '%s' の実行中に予期しないエラーが発生しました", case.name)

    case_result.duration_ms = (time.perf_counter() - start_time) * 1000

    if case_result.status == "failed":
        _notify(listeners, "test_failed", case.name, case_result.message or "")
    _notify(listeners, "test_finished", case.name)
    return case_result


def _notify(listeners: list[RunListener], event: str, *args: Any) -> None:
    for listener in listeners:
        getattr(listener, event)(*args)
