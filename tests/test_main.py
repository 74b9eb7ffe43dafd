import logging
import os
import sys
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from xlsx_text.config import XlsxTextConfig
from xlsx_text.main import app, setup_logging

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging() が差し替えたルートロガーを元に戻す"""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def cli_config():
    """WARNING以上のみログ出力する設定でCLIを実行する"""
    with patch.dict(os.environ, {"XLSX_TEXT_LOG_LEVEL": "WARNING"}, clear=True):
        test_config = XlsxTextConfig()
        with patch("xlsx_text.main.config", test_config):
            yield test_config


@pytest.fixture
def book_path(xlsx_builder):
    return xlsx_builder.build(
        {
            "First": xlsx_builder.worksheet(
                '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1" t="n"><v>42</v></c></row>'
                '<row r="2"><c r="A2" t="b"><v>1</v></c></row>'
            ),
            "Second": xlsx_builder.worksheet('<row r="1"><c r="C1" t="n"><v>7</v></c></row>'),
        },
        shared_strings=xlsx_builder.shared_strings(["<t>hello</t>"]),
    )


class TestSetupLogging:
    """setup_logging() のテスト"""

    @pytest.mark.unit
    def test_logs_only_to_stderr(self, cli_config):
        """既存のハンドラが外され、stderr のハンドラのみになること"""
        root_logger = logging.getLogger()
        root_logger.addHandler(logging.StreamHandler(sys.stdout))

        setup_logging()

        assert len(root_logger.handlers) == 1
        assert root_logger.handlers[0].stream is sys.stderr
        assert root_logger.level == logging.WARNING

    @pytest.mark.unit
    def test_explicit_level(self, cli_config):
        """引数のログレベルが設定より優先されること"""
        setup_logging(logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG


class TestSheetsCommand:
    """sheets コマンドのテスト"""

    def test_lists_sheet_names(self, cli_config, book_path):
        result = runner.invoke(app, ["sheets", str(book_path)])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["First", "Second"]

    def test_invalid_package(self, cli_config, tmp_path):
        """zipでないファイルはエラー終了すること"""
        path = tmp_path / "broken.xlsx"
        path.write_text("plain text")

        result = runner.invoke(app, ["sheets", str(path)])

        assert result.exit_code == 1
        assert "not a zip-based spreadsheet package" in result.output

    def test_missing_file(self, cli_config, tmp_path):
        result = runner.invoke(app, ["sheets", str(tmp_path / "missing.xlsx")])

        assert result.exit_code == 1


class TestDumpCommand:
    """dump コマンドのテスト"""

    def test_dump_all_sheets(self, cli_config, book_path):
        """全シートの行が見出し付きで出力されること"""
        result = runner.invoke(app, ["dump", str(book_path)])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == [
            "----------- First -----------",
            "A1: hello\tB1: 42",
            "A2: TRUE",
            "",
            "----------- Second -----------",
            "C1: 7",
            "",
        ]

    def test_dump_single_sheet(self, cli_config, book_path):
        """--sheet で指定したシートのみ出力されること（大文字・小文字は無視）"""
        result = runner.invoke(app, ["dump", str(book_path), "--sheet", "second"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["----------- Second -----------", "C1: 7", ""]

    def test_dump_custom_delimiter(self, cli_config, book_path):
        cli_config.cell_delimiter = " | "

        result = runner.invoke(app, ["dump", str(book_path), "--sheet", "First"])

        assert result.exit_code == 0
        assert "A1: hello | B1: 42" in result.stdout.splitlines()

    def test_dump_unknown_sheet(self, cli_config, book_path):
        """存在しないシート名は候補付きでエラー終了すること"""
        result = runner.invoke(app, ["dump", str(book_path), "--sheet", "Frist"])

        assert result.exit_code == 1
        assert "Did you mean one of: First?" in result.output

    def test_invalid_config(self, cli_config, book_path):
        """設定エラーがある場合は読み込まずに終了すること"""
        cli_config.cell_delimiter = ""

        result = runner.invoke(app, ["dump", str(book_path)])

        assert result.exit_code == 1
        assert "XLSX_TEXT_CELL_DELIMITER must not be empty" in result.output
        assert "hello" not in result.output
