import logging
import sys

import typer

from .config import config
from .errors import XlsxTextError, handle_xlsx_error
from .workbook import Workbook

# typerアプリケーションを作成
app = typer.Typer()


def setup_logging(level: int | None = None):
    """
    xlsx-text のログを stderr のみに出力する

    dump コマンドは stdout にセルの値を書き出すため、ログと混ざらないようにする

    Args:
        level: ログレベル（省略時は XLSX_TEXT_LOG_LEVEL）
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level_value if level is None else level)

    # 既定のハンドラは残さない
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] - %(message)s")
    )
    root_logger.addHandler(stderr_handler)


def _check_config():
    """設定エラーがあればログに出して終了"""
    errors = config.validate()
    if errors:
        for error in errors:
            logging.error(error)
        raise typer.Exit(code=1)


def _fail(error: Exception, context: str) -> typer.Exit:
    classified = handle_xlsx_error(error, context)
    logging.error(str(classified))
    return typer.Exit(code=1)


@app.command()
def sheets(
    path: str = typer.Argument(..., help="読み込む .xlsx ファイルのパス。"),
):
    """
    ワークシート名を宣言順に出力します。
    """
    setup_logging()
    _check_config()
    try:
        with Workbook.open(path) as workbook:
            for name in workbook.sheet_names:
                typer.echo(name)
    except (XlsxTextError, OSError) as e:
        raise _fail(e, path)


@app.command()
def dump(
    path: str = typer.Argument(..., help="読み込む .xlsx ファイルのパス。"),
    sheet: str | None = typer.Option(
        None, "--sheet", help="出力するワークシート名（省略時は全シート）。"
    ),
):
    """
    ワークシートの各行を "A1: 値" の形式で出力します。
    """
    setup_logging()
    _check_config()
    delimiter = config.cell_delimiter
    try:
        with Workbook.open(path) as workbook:
            if sheet is not None:
                worksheets = [(sheet, workbook.worksheet(sheet))]
            else:
                worksheets = workbook.list_worksheets()

            for _, worksheet in worksheets:
                typer.echo(f"----------- {worksheet.name} -----------")
                for row in worksheet.iter_rows():
                    typer.echo(
                        delimiter.join(f"{cell.coordinate}: {cell.value}" for cell in row)
                    )
                typer.echo("")
    except (XlsxTextError, OSError) as e:
        raise _fail(e, path)


if __name__ == "__main__":
    app()
