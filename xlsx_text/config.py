"""
設定管理モジュール
"""

import logging
import os

from dotenv import load_dotenv

# .envファイルを読み込み
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class XlsxTextConfig:
    """xlsx-text設定クラス"""

    def __init__(self):
        # ログ設定
        self.log_level = os.getenv("XLSX_TEXT_LOG_LEVEL", "INFO").strip().upper()

        # 読み取り設定
        self._skip_empty_rows_raw = os.getenv("XLSX_TEXT_SKIP_EMPTY_ROWS", "true")
        self.skip_empty_rows = self._parse_bool(self._skip_empty_rows_raw, True)

        # 出力設定（CLIのセル区切り文字）
        self.cell_delimiter = self._parse_delimiter(
            os.getenv("XLSX_TEXT_CELL_DELIMITER", "\t")
        )

    def _parse_bool(self, value: str, default: bool) -> bool:
        """真偽値文字列を変換（解釈できない値はデフォルト）"""
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        return default

    def _parse_delimiter(self, value: str) -> str:
        """エスケープ表記の区切り文字（"\\t" など）を実際の文字に変換"""
        if value == "\\t":
            return "\t"
        if value == "\\n":
            return "\n"
        return value

    @property
    def log_level_value(self) -> int:
        """loggingモジュールのレベル値を取得（不正値はINFO）"""
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.INFO

    def validate(self) -> list[str]:
        """設定の検証を行い、エラーメッセージのリストを返す"""
        errors = []

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"XLSX_TEXT_LOG_LEVEL is invalid: {self.log_level}")

        normalized = self._skip_empty_rows_raw.strip().lower()
        if normalized not in _TRUE_VALUES | _FALSE_VALUES:
            errors.append(
                f"XLSX_TEXT_SKIP_EMPTY_ROWS must be true or false: {self._skip_empty_rows_raw}"
            )

        if not self.cell_delimiter:
            errors.append("XLSX_TEXT_CELL_DELIMITER must not be empty")

        return errors

    @property
    def is_valid(self) -> bool:
        """設定が有効かどうかを返す"""
        return len(self.validate()) == 0


# グローバル設定インスタンス
config = XlsxTextConfig()
