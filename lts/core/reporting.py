"""
Reporter - テスト実行結果の報告

実行イベントを受け取るリスナーと、RunReport からのレポートファイル生成を提供する。

主な機能:
  - RunListener: 実行イベントの受け口（全て no-op の基底クラス）
  - TapReporter: TAP 形式のストリーム出力
  - HumanReporter: 人が読むための PASS / FAIL 出力とサマリー
  - JsonReporter / JUnitReporter: 実行終了時に JSON / JUnit XML を標準出力へ出力
  - ReportWriter: JSON レポート・JUnit XML レポートの生成（CI 統合用）
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Optional

import typer

if TYPE_CHECKING:
    from .runner import RunReport

logger = logging.getLogger(__name__)

TEST_RESULT_FILE_PREFIX = "lightning-test-result"


# ---------------------------------------------------------------------------
# リスナー基底
# ---------------------------------------------------------------------------

class RunListener:
    """実行イベントの受け口。必要なイベントだけをサブクラスで上書きする。"""

    def run_started(self, total: int) -> None:
        pass

    def test_started(self, name: str) -> None:
        pass

    def test_finished(self, name: str) -> None:
        pass

    def test_failed(self, name: str, message: str) -> None:
        pass

    def run_finished(self, report: RunReport) -> None:
        pass


# ---------------------------------------------------------------------------
# TAP レポーター
# ---------------------------------------------------------------------------

class TapReporter(RunListener):
    """TAP（Test Anything Protocol）形式で結果を出力するリスナー。

    出力例::

        1..2
        ok 1 a
        not ok 2 b
            #boom

    連番はテストケースの実行毎に高々 1 回だけ割り当てられ、単調に増加する。
    同名のテストケースが再度開始された場合は、新しいテストケースとして扱う。
    失敗済みのテストに対する test_finished は何も出力しない。

    コンポーネントテストの個別結果がある場合は、run_finished で
    「#」で始まる診断行として出力する（プランの件数には含めない）::

        # コンポーネントテスト: 2/3 件成功
        #   ok 1 a.test
        #   not ok 2 b.test
        #     expected true
        #   ok 3 c.test # SKIP
    """

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream
        self._counter = 0
        self._passing: dict[str, bool] = {}
        self._reported: set[str] = set()

    @property
    def count(self) -> int:
        """これまでに報告したテスト数。"""
        return self._counter

    def run_started(self, total: int) -> None:
        self._emit(f"1..{total}")

    def test_started(self, name: str) -> None:
        self._passing[name] = True
        self._reported.discard(name)

    def test_finished(self, name: str) -> None:
        if self._passing.get(name) and name not in self._reported:
            self._reported.add(name)
            self._counter += 1
            self._emit(f"ok {self._counter} {name}")

    def test_failed(self, name: str, message: str) -> None:
        self._passing[name] = False
        if name in self._reported:
            logger.debug("報告済みのテストへの失敗通知を無視します: %s", name)
            return
        self._reported.add(name)
        self._counter += 1
        self._emit(f"not ok {self._counter} {name}")
        lines = [line for line in (message or "").splitlines() if line.strip()]
        for line in lines or [message or ""]:
            self._emit(f"    #{line}")

    def run_finished(self, report: RunReport) -> None:
        component = report.component_summary
        if component is None or not component.results:
            return

        passing = sum(1 for r in component.results if r.passed)
        self._emit(f"# コンポーネントテスト: {passing}/{len(component.results)} 件成功")
        for index, result in enumerate(component.results, start=1):
            if result.outcome == "Skip":
                self._emit(f"#   ok {index} {result.full_name} # SKIP")
                continue
            status = "ok" if result.passed else "not ok"
            self._emit(f"#   {status} {index} {result.full_name}")
            if not result.passed and result.message:
                for line in result.message.splitlines():
                    if line.strip():
                        self._emit(f"#     {line}")

    def _emit(self, line: str) -> None:
        typer.echo(line, file=self._stream)


# ---------------------------------------------------------------------------
# Human レポーター
# ---------------------------------------------------------------------------

class HumanReporter(RunListener):
    """人が読むための形式で結果を出力するリスナー。"""

    def __init__(self, stream: Optional[IO[str]] = None, color: Optional[bool] = None) -> None:
        self._stream = stream
        self._color = color

    def run_started(self, total: int) -> None:
        typer.echo(f"{total} 件のテストを実行します...", file=self._stream)

    def test_failed(self, name: str, message: str) -> None:
        label = typer.style("FAIL", fg=typer.colors.RED, bold=True)
        typer.echo(f"{label} {name}", file=self._stream, color=self._color)
        typer.echo(f"     {message}", file=self._stream)

    def run_finished(self, report: RunReport) -> None:
        for case in report.cases:
            if case.status == "passed":
                label = typer.style("PASS", fg=typer.colors.GREEN, bold=True)
                typer.echo(f"{label} {case.name}", file=self._stream, color=self._color)

        typer.echo("=== テストサマリー", file=self._stream)
        for key, value in _compute_summary(report).items():
            typer.echo(f"  {key:20s} {value}", file=self._stream)


# ---------------------------------------------------------------------------
# JSON / JUnit レポーター（標準出力）
# ---------------------------------------------------------------------------

class JsonReporter(RunListener):
    """実行終了時に JSON レポートをストリームへ出力するリスナー。"""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream

    def run_finished(self, report: RunReport) -> None:
        typer.echo(
            json.dumps(build_report_dict(report), ensure_ascii=False, indent=4),
            file=self._stream,
        )


class JUnitReporter(RunListener):
    """実行終了時に JUnit XML レポートをストリームへ出力するリスナー。"""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream

    def run_finished(self, report: RunReport) -> None:
        root = build_junit_element(report)
        typer.echo(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            + ET.tostring(root, encoding="unicode"),
            file=self._stream,
        )


# ---------------------------------------------------------------------------
# レポートファイル
# ---------------------------------------------------------------------------

class ReportWriter:
    """RunReport から JSON / JUnit XML レポートファイルを生成する。"""

    def generate_json(self, report: RunReport, output_dir: Path) -> Path:
        """JSON レポートを生成する。

        Args:
            report: スイート実行結果
            output_dir: 出力先ディレクトリ

        Returns:
            生成されたファイルのパス
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        output_path = output_dir / f"{TEST_RESULT_FILE_PREFIX}.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(build_report_dict(report), f, ensure_ascii=False, indent=4)

        logger.info("JSON レポートを生成しました: %s", output_path)
        return output_path

    def generate_junit_xml(self, report: RunReport, output_dir: Path) -> Path:
        """JUnit XML レポートを生成する。

        Args:
            report: スイート実行結果
            output_dir: 出力先ディレクトリ

        Returns:
            生成されたファイルのパス
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        tree = ET.ElementTree(build_junit_element(report))
        output_path = output_dir / f"{TEST_RESULT_FILE_PREFIX}-junit.xml"
        tree.write(
            str(output_path),
            encoding="utf-8",
            xml_declaration=True,
        )

        logger.info("JUnit XML レポートを生成しました: %s", output_path)
        return output_path


def build_junit_element(report: RunReport) -> ET.Element:
    """RunReport から JUnit XML のルート要素（testsuites）を構築する。

    テストケースに加え、テストアプリが報告した個々のコンポーネントテストも
    testcase として出力する。
    """
    summary = _compute_summary(report)
    components = report.component_summary.results if report.component_summary else []
    component_failures = sum(
        1 for r in components if not r.passed and r.outcome != "Skip"
    )
    component_skips = sum(1 for r in components if r.outcome == "Skip")

    testsuites = ET.Element("testsuites")
    testsuite = ET.SubElement(testsuites, "testsuite")
    testsuite.set("name", report.suite_title)
    testsuite.set("tests", str(summary["tests_ran"] + len(components)))
    testsuite.set("failures", str(summary["failing"] + component_failures))
    testsuite.set("skipped", str(component_skips))
    testsuite.set("errors", "0")
    testsuite.set("time", f"{report.duration_ms / 1000:.3f}")
    if report.started_at is not None:
        testsuite.set("timestamp", report.started_at.isoformat(timespec="seconds"))
    if report.app_url:
        testsuite.set("hostname", report.app_url)

    properties = ET.SubElement(testsuite, "properties")
    for key, value in summary.items():
        prop = ET.SubElement(properties, "property")
        prop.set("name", key)
        prop.set("value", str(value))

    for case in report.cases:
        testcase = ET.SubElement(testsuite, "testcase")
        testcase.set("name", case.name)
        testcase.set("classname", report.suite_title)
        testcase.set("time", f"{case.duration_ms / 1000:.3f}")
        if case.status == "failed":
            failure = ET.SubElement(testcase, "failure")
            failure.set("message", case.message or "")
            if case.error_type:
                failure.set("type", case.error_type)
            failure.text = case.message or ""

    for result in components:
        testcase = ET.SubElement(testsuite, "testcase")
        testcase.set("name", result.full_name)
        testcase.set("classname", f"{report.suite_title}.components")
        run_time = (result.run_time_ms or 0) / 1000
        testcase.set("time", f"{run_time:.3f}")
        if result.outcome == "Skip":
            ET.SubElement(testcase, "skipped")
        elif not result.passed:
            failure = ET.SubElement(testcase, "failure")
            failure.set("message", result.message or "")

    ET.indent(testsuites, space="    ")
    return testsuites


# ---------------------------------------------------------------------------
# 内部ヘルパー
# ---------------------------------------------------------------------------

def build_report_dict(report: RunReport) -> dict[str, Any]:
    """RunReport をレポート用辞書に変換する。"""
    data: dict[str, Any] = {
        "summary": _compute_summary(report),
        "tests": [
            {
                "name": case.name,
                "outcome": "Pass" if case.status == "passed" else "Fail",
                "message": case.message,
                "errorType": case.error_type,
                "runTime": round(case.duration_ms),
            }
            for case in report.cases
        ],
    }

    component = report.component_summary
    if component is not None:
        data["components"] = {
            "failureCount": component.failed,
            "totalCount": component.total,
            "appUrl": component.app_url,
            "durationMs": component.duration_ms,
            "tests": [
                {
                    "fullName": r.full_name,
                    "outcome": r.outcome,
                    "message": r.message,
                    "runTime": r.run_time_ms,
                }
                for r in component.results
            ],
        }
    return data


def _compute_summary(report: RunReport) -> dict[str, Any]:
    """RunReport からサマリーを計算する。"""
    total = report.total
    failing = report.failed_count
    passing = total - failing
    summary: dict[str, Any] = {
        "outcome": "Passed" if report.passed else "Failed",
        "tests_ran": total,
        "passing": passing,
        "failing": failing,
        "pass_rate": f"{round(passing / total * 100)}%" if total else "0%",
        "duration_ms": round(report.duration_ms),
    }
    if report.app_url:
        summary["app_url"] = report.app_url
    component = report.component_summary
    if component is not None:
        summary["component_failures"] = component.failed
        summary["component_total"] = component.total
    return summary
