"""
lts - Lightning コンポーネントテスト実行ハーネス

リモート WebDriver セッション経由でブラウザを操作し、
Salesforce 上の Lightning テストアプリの実行結果を TAP 形式で報告する。

主な構成:
  - config: 実行設定（環境変数・設定ファイル・CLI 上書き）
  - core.session: ブラウザセッションの確立とフロントドアログイン
  - core.waits: ポーリング待機
  - core.components: テストアプリ結果ウィジェットの検証
  - core.runner: スイート実行
  - core.reporting: TAP / Human レポーター、JSON / JUnit XML 出力
  - cli: Typer ベースのコマンドラインインターフェース
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
