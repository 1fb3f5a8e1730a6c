"""
Session - ブラウザセッション管理

選択されたバックエンドに対してブラウザセッションを 1 つ確立し、
終了まで保持する。セッションはどの経路で終了しても必ず解放される。

主な機能:
  - create_driver(): バックエンド種別に応じたドライバ生成
      local / cloud → selenium.webdriver.Remote
      headless      → Playwright Chromium（Selenium 互換のアダプタでラップ）
  - BrowserSession: セッション状態の追跡とクリーンアップ
  - acquire_session() / open_session(): セッションの確立（後者はコンテキストマネージャ）
  - front_door_url() / login(): フロントドア URL によるログイン
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Optional
from urllib.parse import quote

from selenium.common.exceptions import NoSuchElementException
from selenium.webdriver.common.by import By

from ..config.schema import HeadlessBackend, mask_backend_secrets, mask_secrets
from ..errors import SessionCreationError

if TYPE_CHECKING:
    from ..config.schema import Backend, RunConfig

logger = logging.getLogger(__name__)

DriverFactory = Callable[["Backend", Mapping[str, Any]], Any]


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """ブラウザセッションの状態。"""

    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# ヘッドレスバックエンド用アダプタ
# ---------------------------------------------------------------------------

def _to_playwright_selector(by: str, value: str) -> str:
    """Selenium のロケータを Playwright のセレクタ文字列に変換する。"""
    if by == By.ID:
        return f"id={value}"
    if by == By.CSS_SELECTOR:
        return f"css={value}"
    if by == By.XPATH:
        return f"xpath={value}"
    if by == By.CLASS_NAME:
        return f"css=.{value}"
    if by == By.TAG_NAME:
        return f"css={value}"
    if by == By.NAME:
        return f'css=[name="{value}"]'
    raise ValueError(f"未対応のロケータ種別です: {by}")


class PlaywrightElement:
    """Playwright の ElementHandle を Selenium の WebElement 風に扱うラッパー。"""

    def __init__(self, handle: Any) -> None:
        self._handle = handle

    @property
    def text(self) -> str:
        return self._handle.inner_text()

    def get_attribute(self, name: str) -> Optional[str]:
        # Selenium の get_attribute はプロパティも返すため、よく使うものを合わせる
        if name == "innerHTML":
            return self._handle.inner_html()
        if name == "textContent":
            return self._handle.text_content()
        return self._handle.get_attribute(name)


class PlaywrightDriver:
    """Playwright（同期 API）を Selenium WebDriver と同じ操作で扱うアダプタ。

    ヘッドレスバックエンドで使用する。要素が見つからない場合は
    Selenium と同じ NoSuchElementException を送出するため、
    待機処理はバックエンドを区別せずに扱える。
    """

    def __init__(self, playwright: Any, browser: Any, page: Any) -> None:
        self._playwright = playwright
        self._browser = browser
        self._page = page

    @classmethod
    def launch(cls, backend: HeadlessBackend) -> PlaywrightDriver:
        """ヘッドレス Chromium を起動し、Page を生成する。

        Args:
            backend: ヘッドレスバックエンド定義

        Returns:
            起動済みのドライバ
        """
        from playwright.sync_api import sync_playwright

        pw = sync_playwright().start()
        try:
            browser = pw.chromium.launch(
                executable_path=backend.binary_path,
                headless=True,
            )
            context = browser.new_context(
                viewport={"width": backend.window_width, "height": backend.window_height},
            )
            page = context.new_page()
        except Exception:
            pw.stop()
            raise
        return cls(pw, browser, page)

    @property
    def current_url(self) -> str:
        return self._page.url

    @property
    def page_source(self) -> str:
        return self._page.content()

    def get(self, url: str) -> None:
        self._page.goto(url)
        self._page.wait_for_load_state("domcontentloaded")

    def find_element(self, by: str, value: str) -> PlaywrightElement:
        handle = self._page.query_selector(_to_playwright_selector(by, value))
        if handle is None:
            raise NoSuchElementException(f"要素が見つかりません: {by}={value}")
        return PlaywrightElement(handle)

    def find_elements(self, by: str, value: str) -> list[PlaywrightElement]:
        handles = self._page.query_selector_all(_to_playwright_selector(by, value))
        return [PlaywrightElement(h) for h in handles]

    def quit(self) -> None:
        try:
            self._browser.close()
        finally:
            self._playwright.stop()


# ---------------------------------------------------------------------------
# ドライバ生成
# ---------------------------------------------------------------------------

def _build_remote_options(capabilities: Mapping[str, Any]) -> Any:
    """capability から WebDriver の Options を構築する（デフォルト: chrome）。"""
    from selenium import webdriver

    browser_name = str(capabilities.get("browserName", "chrome"))
    options_classes = {
        "chrome": webdriver.ChromeOptions,
        "firefox": webdriver.FirefoxOptions,
        "MicrosoftEdge": webdriver.EdgeOptions,
        "safari": webdriver.SafariOptions,
    }
    options_cls = options_classes.get(browser_name, webdriver.ChromeOptions)
    options = options_cls()
    for key, value in capabilities.items():
        if key == "browserName":
            continue
        options.set_capability(key, value)
    return options


def create_driver(backend: Backend, capabilities: Mapping[str, Any]) -> Any:
    """バックエンド種別に応じたドライバを生成する。

    Args:
        backend: バックエンド定義
        capabilities: WebDriver に追加で渡す capability

    Returns:
        Selenium WebDriver、またはヘッドレス時は PlaywrightDriver
    """
    if isinstance(backend, HeadlessBackend):
        return PlaywrightDriver.launch(backend)

    from selenium import webdriver

    return webdriver.Remote(
        command_executor=backend.command_executor,
        options=_build_remote_options(capabilities),
    )


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """ブラウザセッションの管理クラス。

    1 回の実行で 1 つだけ生成され、逐次的にのみ使用される。
    with 文で使用すると、例外発生時も含めて必ず close() される。
    """

    def __init__(
        self,
        backend: Backend,
        capabilities: Optional[Mapping[str, Any]] = None,
        driver_factory: Optional[DriverFactory] = None,
    ) -> None:
        self._backend = backend
        self._capabilities = dict(capabilities or {})
        self._driver_factory = driver_factory or create_driver
        self._state: SessionState = SessionState.IDLE
        self._driver: Any = None

    @property
    def state(self) -> SessionState:
        """現在のセッション状態を返す。"""
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def wait_timeout(self) -> float:
        """バックエンドごとの要素待機のデフォルト秒数。"""
        return self._backend.default_wait_timeout

    @property
    def driver(self) -> Any:
        """ドライバを返す。

        Raises:
            RuntimeError: セッションがアクティブでない場合
        """
        if not self.is_active:
            raise RuntimeError(
                "アクティブなセッションがありません。"
                "先に launch() を呼んでください。"
            )
        return self._driver

    def launch(self) -> None:
        """バックエンドに接続し、ブラウザセッションを確立する。

        Raises:
            RuntimeError: 既にアクティブなセッションがある場合
            SessionCreationError: 接続失敗、または capability 要求が拒否された場合
        """
        if self._state == SessionState.ACTIVE:
            raise RuntimeError(
                "既にアクティブなセッションがあります。"
                "先に close() を呼んでください。"
            )

        self._state = SessionState.LAUNCHING
        logger.info("ブラウザセッションを確立しています... (mode=%s)", self._backend.mode)

        try:
            self._driver = self._driver_factory(self._backend, self._capabilities)
        except Exception as exc:
            self._state = SessionState.IDLE
            detail = mask_backend_secrets(self._backend, str(exc))
            logger.error("ブラウザセッションの確立に失敗しました: %s", detail)
            raise SessionCreationError(
                f"ブラウザセッションを確立できません (mode={self._backend.mode}): {detail}"
            ) from exc

        self._state = SessionState.ACTIVE
        logger.info("ブラウザセッションを確立しました")

    def close(self) -> None:
        """ブラウザセッションを終了し、リソースをクリーンアップする。"""
        if self._state in (SessionState.IDLE, SessionState.CLOSED, SessionState.CLOSING):
            return

        self._state = SessionState.CLOSING
        logger.info("ブラウザセッションを終了しています...")

        try:
            if self._driver is not None:
                self._driver.quit()
        except Exception:
            logger.exception("ブラウザセッションの終了中にエラーが発生しました")
        finally:
            self._driver = None
            self._state = SessionState.CLOSED
            logger.info("ブラウザセッションを終了しました")

    def __enter__(self) -> BrowserSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def acquire_session(
    config: RunConfig,
    driver_factory: Optional[DriverFactory] = None,
) -> BrowserSession:
    """実行設定に従ってブラウザセッションを確立する。

    Args:
        config: 実行設定
        driver_factory: ドライバ生成関数（テスト用。None で create_driver）

    Returns:
        アクティブな BrowserSession

    Raises:
        SessionCreationError: バックエンドへの接続に失敗した場合
    """
    session = BrowserSession(
        config.backend,
        capabilities=config.capabilities,
        driver_factory=driver_factory,
    )
    session.launch()
    return session


@contextmanager
def open_session(
    config: RunConfig,
    driver_factory: Optional[DriverFactory] = None,
) -> Iterator[BrowserSession]:
    """セッションを確立し、ブロック終了時に必ず解放するコンテキストマネージャ。"""
    session = acquire_session(config, driver_factory=driver_factory)
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# フロントドアログイン
# ---------------------------------------------------------------------------

def front_door_url(config: RunConfig, ret_url: Optional[str] = None) -> str:
    """ワンタイム認証用のフロントドア URL を組み立てる。

    Args:
        config: 実行設定（instance_url, access_token を使用）
        ret_url: ログイン後の遷移先パス

    Returns:
        フロントドア URL
    """
    token = config.access_token.get_secret_value()
    url = f"{config.instance_url}/secur/frontdoor.jsp?sid={token}"
    if ret_url is not None:
        url += f"&retURL={quote(ret_url, safe='/')}"
    return url


def login(
    session: BrowserSession,
    config: RunConfig,
    ret_url: Optional[str] = None,
) -> str:
    """フロントドア URL へ遷移してログインし、遷移後のページソースを返す。

    リトライは行わない。遷移の失敗はそのまま送出される。

    Args:
        session: アクティブなブラウザセッション
        config: 実行設定
        ret_url: ログイン後の遷移先パス

    Returns:
        遷移後のページソース
    """
    url = front_door_url(config, ret_url)
    logger.info("ログインしています: %s", mask_secrets(config, url))
    driver = session.driver
    driver.get(url)
    return driver.page_source
