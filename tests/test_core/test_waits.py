"""
待機戦略のユニットテスト

時計と sleep は FakeClock で注入し、実時間の待機は最小限にする。

テスト対象:
  - wait_for: ポーリング待機
  - url_contains / presence_of_element: 条件関数
  - find_when_present: バックエンドごとのデフォルト秒数
"""

from __future__ import annotations

import pytest
from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from tests.helpers import FakeClock, FakeDriver, FakeElement, make_session
from lts.config.schema import HeadlessBackend
from lts.core.waits import find_when_present, presence_of_element, url_contains, wait_for
from lts.errors import WaitTimeoutError


def _succeeds_on(attempt: int, value: object = "done"):
    """attempt 回目の評価で value を返す条件関数と呼び出し記録を返す。"""
    calls: list[int] = []

    def _predicate(driver: object) -> object:
        calls.append(1)
        if len(calls) >= attempt:
            return value
        raise NoSuchElementException("not yet")

    return _predicate, calls


# ---------------------------------------------------------------------------
# wait_for
# ---------------------------------------------------------------------------

class TestWaitFor:
    """wait_for のテスト"""

    def test_returns_immediately_when_true(self, fake_clock: FakeClock) -> None:
        """初回で成立すれば待機しないこと"""
        predicate, calls = _succeeds_on(1)
        result = wait_for(None, predicate, 10, 1, clock=fake_clock, sleep=fake_clock.sleep)
        assert result == "done"
        assert len(calls) == 1
        assert fake_clock.sleeps == []

    def test_succeeds_on_third_evaluation(self, fake_clock: FakeClock) -> None:
        """3 回目で成立した場合、評価 3 回・待機 2 回で値を返すこと"""
        predicate, calls = _succeeds_on(3)
        result = wait_for(None, predicate, 10, 1, clock=fake_clock, sleep=fake_clock.sleep)
        assert result == "done"
        assert len(calls) == 3
        assert fake_clock.sleeps == [1, 1]
        assert fake_clock.now == pytest.approx(2.0)

    def test_falsy_result_is_retried(self, fake_clock: FakeClock) -> None:
        """偽の戻り値は未成立として再評価されること"""
        values = iter([False, None, "", "ok"])
        result = wait_for(
            None, lambda d: next(values), 10, 1,
            clock=fake_clock, sleep=fake_clock.sleep,
        )
        assert result == "ok"
        assert len(fake_clock.sleeps) == 3

    def test_timeout_raises_with_message(self, fake_clock: FakeClock) -> None:
        """成立しない条件は timeout 秒でメッセージ付きの WaitTimeoutError になること"""
        predicate, calls = _succeeds_on(1000)
        with pytest.raises(WaitTimeoutError) as exc_info:
            wait_for(
                None, predicate, 5, 1, "結果が表示されませんでした",
                url="https://example.com/c/tests.app",
                clock=fake_clock, sleep=fake_clock.sleep,
            )
        exc = exc_info.value
        assert str(exc) == "結果が表示されませんでした"
        assert exc.url == "https://example.com/c/tests.app"
        assert exc.timeout == 5
        assert fake_clock.now == pytest.approx(5.0)
        assert len(calls) == 6

    def test_timeout_error_is_builtin_timeout(self, fake_clock: FakeClock) -> None:
        """WaitTimeoutError が TimeoutError としても捕捉できること"""
        with pytest.raises(TimeoutError):
            wait_for(None, lambda d: False, 2, 1, clock=fake_clock, sleep=fake_clock.sleep)

    def test_default_message(self, fake_clock: FakeClock) -> None:
        """メッセージ省略時は秒数を含む既定メッセージになること"""
        with pytest.raises(WaitTimeoutError, match="3 秒以内"):
            wait_for(None, lambda d: False, 3, 1, clock=fake_clock, sleep=fake_clock.sleep)

    def test_other_exception_propagates(self, fake_clock: FakeClock) -> None:
        """再試行対象外の例外は即座に送出されること"""
        calls: list[int] = []

        def _broken(driver: object) -> object:
            calls.append(1)
            raise RuntimeError("driver crashed")

        with pytest.raises(RuntimeError, match="driver crashed"):
            wait_for(None, _broken, 10, 1, clock=fake_clock, sleep=fake_clock.sleep)
        assert len(calls) == 1
        assert fake_clock.sleeps == []

    def test_custom_ignored_exceptions(self, fake_clock: FakeClock) -> None:
        """ignored_exceptions で再試行対象の例外を変更できること"""
        attempts = iter([KeyError("x"), KeyError("y")])

        def _predicate(driver: object) -> str:
            exc = next(attempts, None)
            if exc is not None:
                raise exc
            return "ok"

        result = wait_for(
            None, _predicate, 10, 1,
            ignored_exceptions=(KeyError,),
            clock=fake_clock, sleep=fake_clock.sleep,
        )
        assert result == "ok"

    def test_real_clock_short_timeout(self) -> None:
        """実時間の時計でも短いタイムアウトで終了すること"""
        with pytest.raises(WaitTimeoutError):
            wait_for(None, lambda d: False, 0.1, 0.02)


# ---------------------------------------------------------------------------
# 条件関数
# ---------------------------------------------------------------------------

class TestPredicates:
    """条件関数のテスト"""

    def test_url_contains(self) -> None:
        """URL に部分文字列が含まれるときだけ真になること"""
        driver = FakeDriver()
        driver.current_url = "https://example.com/c/tests.app"
        assert url_contains("/c/tests.app")(driver) is True
        assert url_contains("/c/other.app")(driver) is False

    def test_presence_of_element_returns_element(self) -> None:
        """要素が存在すればその要素を返すこと"""
        element = FakeElement({"id": "x"})
        driver = FakeDriver(elements={(By.ID, "x"): element})
        assert presence_of_element(By.ID, "x")(driver) is element

    def test_presence_of_element_raises_when_absent(self) -> None:
        """要素がなければ NoSuchElementException を送出すること"""
        with pytest.raises(NoSuchElementException):
            presence_of_element(By.ID, "x")(FakeDriver())

    def test_wait_for_element_that_appears_later(self, fake_clock: FakeClock) -> None:
        """後から現れる要素を待機して取得できること"""
        element = FakeElement()
        driver = FakeDriver(elements={(By.ID, "late"): element}, appear_after=2)
        result = wait_for(
            driver, presence_of_element(By.ID, "late"), 10, 1,
            clock=fake_clock, sleep=fake_clock.sleep,
        )
        assert result is element
        assert driver.find_calls == 3


# ---------------------------------------------------------------------------
# find_when_present
# ---------------------------------------------------------------------------

class TestFindWhenPresent:
    """find_when_present のテスト"""

    def test_returns_present_element(self) -> None:
        """存在する要素をそのまま返すこと"""
        element = FakeElement()
        session = make_session(FakeDriver(elements={(By.ID, "x"): element}))
        assert find_when_present(session, By.ID, "x") is element

    def test_uses_backend_default_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """timeout 省略時はバックエンドのデフォルト秒数で待機すること"""
        captured: dict[str, float] = {}

        def _fake_wait_for(driver, predicate, timeout, poll_interval, message):
            captured["timeout"] = timeout
            return "element"

        monkeypatch.setattr("lts.core.waits.wait_for", _fake_wait_for)
        session = make_session(FakeDriver(), backend=HeadlessBackend(binary_path="/bin/chromium"))
        assert find_when_present(session, By.ID, "x") == "element"
        assert captured["timeout"] == 20.0

    def test_explicit_timeout_and_message(self) -> None:
        """明示した秒数でタイムアウトし、ロケータを含むメッセージになること"""
        session = make_session(FakeDriver())
        with pytest.raises(WaitTimeoutError, match="id=missing"):
            find_when_present(session, By.ID, "missing", timeout=0.05, poll_interval=0.01)
