"""
lts CLI エントリポイント

python -m lts でコマンドラインインターフェースを起動する。

使用例:
  python -m lts run                          # デフォルト設定で実行
  python -m lts run -a myTests -r human      # テストアプリと出力形式を指定
  python -m lts check-config                 # 設定の解決結果のみ確認
"""

from __future__ import annotations

from .cli import app

app(prog_name="lts")
