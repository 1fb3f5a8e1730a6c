"""
テスト用ヘルパー

実際のブラウザ・Selenium サーバーは使用しない。
ドライバは Selenium WebDriver と同じ操作を持つ FakeDriver で代替する。
"""

from __future__ import annotations

from typing import Any, Optional

from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from lts.config.schema import LocalBackend
from lts.core.session import BrowserSession

INSTANCE_URL = "https://example.my.salesforce.com"
ACCESS_TOKEN = "00D000000000001!AQ4AQtokenvalue"


# ---------------------------------------------------------------------------
# フェイクドライバ
# ---------------------------------------------------------------------------

class FakeElement:
    """WebElement の代替。"""

    def __init__(self, attributes: Optional[dict[str, str]] = None, text: str = "") -> None:
        self.attributes = dict(attributes or {})
        self.text = text

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)


class FakeDriver:
    """Selenium WebDriver の代替。

    Args:
        landing_url: get() 後の current_url（None なら遷移先 URL そのもの）
        elements: (by, value) → FakeElement の辞書
        appear_after: find_element が何回失敗した後に要素を返すか
        page_source: page_source の値
    """

    def __init__(
        self,
        *,
        landing_url: Optional[str] = None,
        elements: Optional[dict[tuple[str, str], FakeElement]] = None,
        appear_after: int = 0,
        page_source: str = "<html><body>ok</body></html>",
    ) -> None:
        self.landing_url = landing_url
        self.elements = dict(elements or {})
        self.appear_after = appear_after
        self._page_source = page_source
        self.visited: list[str] = []
        self.current_url = "about:blank"
        self.find_calls = 0
        self.quit_called = False

    @property
    def page_source(self) -> str:
        return self._page_source

    def get(self, url: str) -> None:
        self.visited.append(url)
        self.current_url = self.landing_url or url

    def find_element(self, by: str, value: str) -> FakeElement:
        self.find_calls += 1
        if self.find_calls <= self.appear_after or (by, value) not in self.elements:
            raise NoSuchElementException(f"no such element: {by}={value}")
        return self.elements[(by, value)]

    def find_elements(self, by: str, value: str) -> list[FakeElement]:
        element = self.elements.get((by, value))
        return [element] if element is not None else []

    def quit(self) -> None:
        self.quit_called = True


def results_element(failures: str = "0", total: str = "12") -> dict[tuple[str, str], FakeElement]:
    """結果要素（run_results_tap）を含む elements 辞書を返す。"""
    return {
        (By.ID, "run_results_tap"): FakeElement(
            {"data-failure-count": failures, "data-total-count": total}
        ),
    }


def make_session(driver: Any, backend: Any = None) -> BrowserSession:
    """FakeDriver を保持するアクティブな BrowserSession を生成する。"""
    session = BrowserSession(
        backend or LocalBackend(),
        driver_factory=lambda backend, caps: driver,
    )
    session.launch()
    return session


# ---------------------------------------------------------------------------
# フェイク時計
# ---------------------------------------------------------------------------

class FakeClock:
    """wait_for に注入する時計。sleep() で時刻が進む。"""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

