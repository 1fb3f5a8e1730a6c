# コアモジュール
# セッション管理、ポーリング待機、コンポーネントテスト検証、スイート実行、レポート生成を提供

from .components import ComponentResult, ComponentSummary, run_component_tests
from .reporting import HumanReporter, JsonReporter, JUnitReporter, ReportWriter, RunListener, TapReporter
from .runner import CaseResult, RunReport, SuiteCase, default_cases, run_suite
from .session import BrowserSession, SessionState, acquire_session, front_door_url, login, open_session
from .waits import find_when_present, presence_of_element, url_contains, wait_for

__all__ = [
    "BrowserSession",
    "CaseResult",
    "ComponentResult",
    "ComponentSummary",
    "HumanReporter",
    "JUnitReporter",
    "JsonReporter",
    "ReportWriter",
    "RunListener",
    "RunReport",
    "SessionState",
    "SuiteCase",
    "TapReporter",
    "acquire_session",
    "default_cases",
    "find_when_present",
    "front_door_url",
    "login",
    "open_session",
    "presence_of_element",
    "run_component_tests",
    "run_suite",
    "url_contains",
    "wait_for",
]
