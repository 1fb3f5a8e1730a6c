# 設定モジュール
# 実行設定のスキーマ、環境変数・上書き値からの解決、YAML 設定ファイルの読み込みを提供

from .file import FileConfig, load_file_config
from .schema import CloudBackend, HeadlessBackend, LocalBackend, RunConfig, mask_backend_secrets, mask_secrets
from .settings import SettingSources, load_run_config, parse_mode, parse_overrides, resolve_backend

__all__ = [
    "CloudBackend",
    "FileConfig",
    "HeadlessBackend",
    "LocalBackend",
    "RunConfig",
    "SettingSources",
    "load_file_config",
    "load_run_config",
    "mask_backend_secrets",
    "mask_secrets",
    "parse_mode",
    "parse_overrides",
    "resolve_backend",
]
