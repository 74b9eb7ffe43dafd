import os
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

SHEET_MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
DOC_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
WORKSHEET_REL_TYPE = f"{DOC_REL_NS}/worksheet"


class XlsxBuilder:
    """テスト用の最小構成 .xlsx パッケージを zipfile で組み立てる"""

    SHEET_MAIN_NS = SHEET_MAIN_NS
    DOC_REL_NS = DOC_REL_NS
    PACKAGE_REL_NS = PACKAGE_REL_NS
    WORKSHEET_REL_TYPE = WORKSHEET_REL_TYPE

    def __init__(self, directory: Path):
        self.directory = directory
        self._count = 0

    @staticmethod
    def worksheet(rows: str, merges: list[str] | tuple[str, ...] = ()) -> str:
        """<sheetData> の中身と結合範囲からワークシートXMLを作成"""
        merge_xml = ""
        if merges:
            cells = "".join(f'<mergeCell ref="{ref}"/>' for ref in merges)
            merge_xml = f'<mergeCells count="{len(merges)}">{cells}</mergeCells>'
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<worksheet xmlns="{SHEET_MAIN_NS}" xmlns:r="{DOC_REL_NS}">'
            f"<sheetData>{rows}</sheetData>{merge_xml}</worksheet>"
        )

    @staticmethod
    def shared_strings(items: list[str]) -> str:
        """<si> の中身（"<t>foo</t>" など）のリストから共有文字列XMLを作成"""
        body = "".join(f"<si>{item}</si>" for item in items)
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<sst xmlns="{SHEET_MAIN_NS}" count="{len(items)}" uniqueCount="{len(items)}">'
            f"{body}</sst>"
        )

    @staticmethod
    def styles(cell_xfs: list[int], num_fmts: dict[int, str] | None = None) -> str:
        """セルスタイル（numFmtId の並び）とカスタム書式からスタイルXMLを作成"""
        num_fmts = num_fmts or {}
        fmt_xml = ""
        if num_fmts:
            entries = "".join(
                f'<numFmt numFmtId="{fmt_id}" formatCode="{code}"/>'
                for fmt_id, code in num_fmts.items()
            )
            fmt_xml = f'<numFmts count="{len(num_fmts)}">{entries}</numFmts>'
        xfs = "".join(f'<xf numFmtId="{fmt_id}" fontId="0"/>' for fmt_id in cell_xfs)
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<styleSheet xmlns="{SHEET_MAIN_NS}">{fmt_xml}'
            # cellStyleXfs の xf はスタイル番号に含まれない
            '<cellStyleXfs count="1"><xf numFmtId="14" fontId="0"/></cellStyleXfs>'
            f'<cellXfs count="{len(cell_xfs)}">{xfs}</cellXfs>'
            "</styleSheet>"
        )

    def build(
        self,
        sheets: dict[str, str],
        *,
        shared_strings: str | None = None,
        styles: str | None = None,
        parts: dict[str, str] | None = None,
        omit: tuple[str, ...] = (),
    ) -> Path:
        """
        パッケージを書き出してパスを返す

        Args:
            sheets: シート名 -> ワークシートXML（宣言順）
            shared_strings: xl/sharedStrings.xml の内容
            styles: xl/styles.xml の内容
            parts: 追加・上書きするパーツ
            omit: 書き出さないパーツ
        """
        contents: dict[str, str] = {}
        sheet_entries = []
        rel_entries = []
        for index, (name, body) in enumerate(sheets.items(), start=1):
            sheet_entries.append(f'<sheet name="{name}" sheetId="{index}" r:id="rId{index}"/>')
            rel_entries.append(
                f'<Relationship Id="rId{index}" Type="{WORKSHEET_REL_TYPE}" '
                f'Target="worksheets/sheet{index}.xml"/>'
            )
            contents[f"xl/worksheets/sheet{index}.xml"] = body

        contents["xl/workbook.xml"] = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<workbook xmlns="{SHEET_MAIN_NS}" xmlns:r="{DOC_REL_NS}">'
            f"<sheets>{''.join(sheet_entries)}</sheets></workbook>"
        )
        contents["xl/_rels/workbook.xml.rels"] = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<Relationships xmlns="{PACKAGE_REL_NS}">{"".join(rel_entries)}</Relationships>'
        )
        if shared_strings is not None:
            contents["xl/sharedStrings.xml"] = shared_strings
        if styles is not None:
            contents["xl/styles.xml"] = styles
        contents.update(parts or {})
        for part_name in omit:
            contents.pop(part_name, None)

        self._count += 1
        path = self.directory / f"book{self._count}.xlsx"
        with zipfile.ZipFile(path, "w") as archive:
            for part_name, content in contents.items():
                archive.writestr(part_name, content)
        return path


@pytest.fixture
def xlsx_builder(tmp_path):
    """zipfileで組み立てるパッケージのビルダー"""
    return XlsxBuilder(tmp_path)


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing"""
    env_vars = {
        "XLSX_TEXT_LOG_LEVEL": "DEBUG",
        "XLSX_TEXT_SKIP_EMPTY_ROWS": "true",
        "XLSX_TEXT_CELL_DELIMITER": "\\t",
    }

    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars
