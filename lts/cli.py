"""
CLI エントリポイント - Typer ベースのコマンドラインインターフェース

lts コマンドとして以下のサブコマンドを提供する:
  - run: テストアプリを実行し、結果を TAP（または human / json / junit 形式）で出力
  - check-config: 設定の解決結果を表示（セッションは確立しない）

終了コード:
  0   全テスト成功
  100 テスト失敗あり
  1   設定エラー・セッション確立エラー
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

logger = logging.getLogger(__name__)

TEST_FAILURE_EXIT_CODE = 100

_RESULT_FORMATS = ("tap", "human", "json", "junit")

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "lts - Lightning コンポーネントテスト実行ツール\n\n"
        "基本の流れ:\n"
        "  1. SALESFORCE_INSTANCE_URL / SALESFORCE_ACCESS_TOKEN を設定\n"
        "  2. lts run            テストアプリを実行して結果を TAP で出力\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="進捗ログを標準エラー出力に表示する",
    ),
) -> None:
    """ログ出力を設定する。"""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(name)s - %(message)s")


def _resolve_config(
    config_file: Optional[Path],
    overrides: Optional[List[str]],
    **params,
):
    """設定ファイル・--set・環境変数から RunConfig を解決する。"""
    from .config import load_file_config, load_run_config, parse_overrides

    file_config = load_file_config(config_file) if config_file is not None else None
    return load_run_config(
        overrides=parse_overrides(overrides or []),
        file_config=file_config,
        **params,
    )


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    app_name: Optional[str] = typer.Option(
        None, "--app-name", "-a", help="テストアプリ名（デフォルト: tests）",
    ),
    result_format: str = typer.Option(
        "tap", "--result-format", "-r", help="出力形式（tap / human / json / junit）",
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-d", help="JSON / JUnit XML レポートの出力先ディレクトリ",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config-file", "-f", help="YAML 設定ファイル",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="結果要素の出現を待つ秒数（デフォルト: 180）",
    ),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", "-s", help="環境変数より優先する設定（KEY=VALUE、複数指定可）",
    ),
) -> None:
    """テストアプリを実行し、コンポーネントテストの結果を報告する。"""
    from .core.reporting import (
        HumanReporter,
        JsonReporter,
        JUnitReporter,
        ReportWriter,
        TapReporter,
    )
    from .core.runner import run_suite
    from .errors import ConfigurationError, SessionCreationError

    if result_format not in _RESULT_FORMATS:
        typer.echo(
            f"エラー: 出力形式が不正です: {result_format}（{' / '.join(_RESULT_FORMATS)}）",
            err=True,
        )
        raise typer.Exit(code=1)

    try:
        config = _resolve_config(
            config_file, overrides,
            app_name=app_name,
            results_timeout=timeout,
        )
    except ConfigurationError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    reporters = {
        "tap": TapReporter,
        "human": HumanReporter,
        "json": JsonReporter,
        "junit": JUnitReporter,
    }
    listener = reporters[result_format]()

    try:
        report = run_suite(config, listeners=[listener])
    except SessionCreationError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    if output_dir is not None:
        writer = ReportWriter()
        json_path = writer.generate_json(report, output_dir)
        junit_path = writer.generate_junit_xml(report, output_dir)
        # 標準出力のレポートの解析を妨げないよう標準エラー出力に出す
        typer.echo(f"レポート: {json_path}", err=True)
        typer.echo(f"レポート: {junit_path}", err=True)

    if not report.passed:
        raise typer.Exit(code=TEST_FAILURE_EXIT_CODE)


# ---------------------------------------------------------------------------
# check-config コマンド
# ---------------------------------------------------------------------------

@app.command("check-config")
def check_config(
    config_file: Optional[Path] = typer.Option(
        None, "--config-file", "-f", help="YAML 設定ファイル",
    ),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", "-s", help="環境変数より優先する設定（KEY=VALUE、複数指定可）",
    ),
) -> None:
    """設定を解決して表示する。ブラウザセッションは確立しない。"""
    from .config.schema import CloudBackend, HeadlessBackend, LocalBackend
    from .errors import ConfigurationError

    try:
        config = _resolve_config(config_file, overrides)
    except ConfigurationError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    backend = config.backend
    typer.echo(f"モード: {backend.mode}")
    if isinstance(backend, LocalBackend):
        typer.echo(f"Selenium URL: {backend.selenium_url}")
    elif isinstance(backend, HeadlessBackend):
        typer.echo(f"バイナリ: {backend.binary_path}")
    elif isinstance(backend, CloudBackend):
        typer.echo(f"ホスト: {backend.host} (ユーザー: {backend.username})")
    typer.echo(f"インスタンス: {config.instance_url}")
    typer.echo(f"テストアプリ: {config.app_url}")
    typer.echo(
        f"待機: URL {config.url_timeout:g} 秒 / 結果 {config.results_timeout:g} 秒"
        f"（間隔 {config.poll_interval:g} 秒、要素 {backend.default_wait_timeout:g} 秒）"
    )
