"""
設定ファイル - YAML 設定ファイルの読み込み・検証

ruamel.yaml で YAML を読み込み、Pydantic モデル FileConfig に変換する。

設定ファイル例::

    settings:
      WEBKIT_MODE: CLOUD
      SAUCE_USERNAME: ci-user
    appName: tests
    resultsTimeout: 300
    capabilities:
      browserName: chrome
      platformName: "Windows 10"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import ConfigurationError


# ---------------------------------------------------------------------------
# 設定ファイルモデル
# ---------------------------------------------------------------------------

class FileConfig(BaseModel):
    """設定ファイルの内容。

    キーは camelCase で記述し、settings は環境変数と同名のキーで上書き値を指定する。
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    settings: dict[str, str] = Field(default_factory=dict, description="環境変数より優先する上書き値")
    capabilities: dict[str, Any] = Field(default_factory=dict, description="WebDriver に追加で渡す capability")
    appName: Optional[str] = None
    resultsElementId: Optional[str] = None
    detailElementId: Optional[str] = None
    urlTimeout: Optional[float] = None
    resultsTimeout: Optional[float] = None
    pollInterval: Optional[float] = None

    def run_fields(self) -> dict[str, Any]:
        """RunConfig のフィールド名に対応付けた指定済みの値を返す。"""
        mapping = {
            "app_name": self.appName,
            "results_element_id": self.resultsElementId,
            "detail_element_id": self.detailElementId,
            "url_timeout": self.urlTimeout,
            "results_timeout": self.resultsTimeout,
            "poll_interval": self.pollInterval,
        }
        fields = {k: v for k, v in mapping.items() if v is not None}
        if self.capabilities:
            fields["capabilities"] = dict(self.capabilities)
        return fields


# ---------------------------------------------------------------------------
# 読み込み
# ---------------------------------------------------------------------------

def load_file_config(path: Path) -> FileConfig:
    """YAML 設定ファイルを読み込み、FileConfig に変換する。

    Args:
        path: 設定ファイルのパス

    Returns:
        検証済みの FileConfig

    Raises:
        ConfigurationError: ファイルが存在しない、YAML 構文エラー、スキーマ違反の場合
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"設定ファイルが見つかりません: {path}")

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except YAMLError as e:
        line_info = ""
        if hasattr(e, "problem_mark") and e.problem_mark is not None:
            mark = e.problem_mark
            line_info = f" (行 {mark.line + 1}, 列 {mark.column + 1})"
        raise ConfigurationError(f"YAML 構文エラー{line_info}: {e}") from e

    if data is None:
        return FileConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(f"設定ファイルのトップレベルはマッピングである必要があります: {path}")

    # settings の値は文字列として扱う（数値・真偽値で書かれた場合も）
    settings = data.get("settings")
    if isinstance(settings, dict):
        data["settings"] = {str(k): "" if v is None else str(v) for k, v in settings.items()}

    try:
        return FileConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"設定ファイルのスキーマ検証エラー: {e}") from e
