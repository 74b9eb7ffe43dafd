"""
ワークブック読み込みモジュール

パッケージを開き、リレーションシップ・シート一覧・共有文字列・数値書式を
初回アクセス時に読み込んでキャッシュし、ワークシートのストリームを提供する
"""

import difflib
import logging
import os
from typing import IO, Any

from xlsx_text.errors import (
    MalformedMarkupError,
    MissingRequiredPartError,
    WorksheetNotFoundError,
)
from xlsx_text.excel import CellValueResolver, NumberFormatTable, SharedStringsTable
from xlsx_text.package import (
    RELATIONSHIPS_PART,
    WORKBOOK_PART,
    OOXMLPackage,
    get_attribute,
    local_name,
    resolve_part_path,
)
from xlsx_text.worksheet import Worksheet, WorksheetStream

logger = logging.getLogger(__name__)


class Workbook:
    """読み取り専用のワークブック"""

    def __init__(self, package: OOXMLPackage):
        self.package = package
        self._rels: dict[str, str] | None = None
        self._sheets: list[tuple[str, str]] | None = None
        self._shared_strings: SharedStringsTable | None = None
        self._number_formats: NumberFormatTable | None = None
        self._worksheets: list[Worksheet] | None = None
        self._resolver: CellValueResolver | None = None

    @classmethod
    def open(cls, source: str | os.PathLike | IO[bytes]) -> "Workbook":
        """
        ファイルパスまたはバイナリストリームからワークブックを開く

        Raises:
            InvalidPackageError: zipとして開けない場合
        """
        package = OOXMLPackage(source)
        logger.info(f"Opened workbook: {package.name}")
        return cls(package)

    @property
    def closed(self) -> bool:
        return self.package.closed

    def close(self) -> None:
        """パッケージを閉じる（以降、派生したワークシートは使用不可）"""
        self.package.close()

    # 参照テーブル（初回アクセス時に relationships -> workbook -> sharedStrings -> styles の順で読み込み）

    def _load(self) -> None:
        if self._sheets is not None:
            return
        self._rels = self._load_relationships()
        self._sheets = self._load_sheets(self._rels)
        self._shared_strings = SharedStringsTable.load(self.package)
        self._number_formats = NumberFormatTable.load(self.package)
        logger.info(f"Loaded workbook structure: {len(self._sheets)} worksheets")

    @property
    def relationships(self) -> dict[str, str]:
        self._load()
        assert self._rels is not None
        return dict(self._rels)

    @property
    def shared_strings(self) -> SharedStringsTable:
        self._load()
        assert self._shared_strings is not None
        return self._shared_strings

    @property
    def number_formats(self) -> NumberFormatTable:
        self._load()
        assert self._number_formats is not None
        return self._number_formats

    @property
    def cell_value_resolver(self) -> CellValueResolver:
        if self._resolver is None:
            self._resolver = CellValueResolver(self.shared_strings, self.number_formats)
        return self._resolver

    def _load_relationships(self) -> dict[str, str]:
        """
        xl/_rels/workbook.xml.rels を読み込む（必須）

        Returns:
            リレーションシップID -> パーツパス のマップ
        """
        if not self.package.has_part(RELATIONSHIPS_PART):
            raise MissingRequiredPartError(RELATIONSHIPS_PART)

        rels: dict[str, str] = {}
        for event, element in self.package.iter_events(RELATIONSHIPS_PART, ("end",)):
            if local_name(element.tag) != "Relationship":
                continue
            rel_id = get_attribute(element, "Id")
            target = get_attribute(element, "Target")
            if rel_id is None or target is None:
                raise MalformedMarkupError(RELATIONSHIPS_PART)
            if get_attribute(element, "TargetMode") == "External":
                logger.warning(f"Skipping external relationship {rel_id}: {target}")
                continue
            rels[rel_id] = resolve_part_path(target)

        logger.info(f"Loaded {len(rels)} relationships")
        return rels

    def _load_sheets(self, rels: dict[str, str]) -> list[tuple[str, str]]:
        """
        xl/workbook.xml からシート一覧を宣言順に読み込む（必須）

        Returns:
            (シート名, パーツパス) のリスト
        """
        if not self.package.has_part(WORKBOOK_PART):
            raise MissingRequiredPartError(WORKBOOK_PART)

        sheets: list[tuple[str, str]] = []
        for event, element in self.package.iter_events(WORKBOOK_PART, ("end",)):
            if local_name(element.tag) != "sheet":
                continue
            name = get_attribute(element, "name")
            rel_id = get_attribute(element, "id")
            if name is None or rel_id is None:
                raise MalformedMarkupError(WORKBOOK_PART)
            if rel_id not in rels:
                raise MissingRequiredPartError(f"relationship {rel_id} ({name})")
            sheets.append((name, rels[rel_id]))

        return sheets

    # ワークシート

    @property
    def sheet_names(self) -> list[str]:
        self._load()
        assert self._sheets is not None
        return [name for name, _ in self._sheets]

    def list_worksheets(self) -> list[tuple[str, Worksheet]]:
        """(シート名, ワークシート) のリストを宣言順に返す"""
        if self._worksheets is None:
            self._load()
            assert self._sheets is not None
            self._worksheets = [
                Worksheet(self, name, part_path) for name, part_path in self._sheets
            ]
        return [(worksheet.name, worksheet) for worksheet in self._worksheets]

    def worksheet(self, sheet_name: str) -> Worksheet:
        """
        シート名からワークシートを取得

        - 完全一致 → そのまま
        - trim + casefold 一致が 1件 → そのシート
        - それ以外 → WorksheetNotFoundError（曖昧一致 or 類似名を候補として付与）
        """
        worksheets = dict(self.list_worksheets())
        resolved, candidates = self._resolve_sheet_name(list(worksheets), sheet_name)
        if resolved is None:
            raise WorksheetNotFoundError(sheet_name, candidates)
        return worksheets[resolved]

    def worksheet_stream(
        self, handle: Worksheet | str, skip_empty_rows: bool | None = None
    ) -> WorksheetStream:
        """ワークシートの新しいストリームを作成（呼び出しごとに先頭から読む）"""
        worksheet = self.worksheet(handle) if isinstance(handle, str) else handle
        return worksheet.stream(skip_empty_rows)

    @staticmethod
    def _resolve_sheet_name(
        sheet_names: list[str], requested: str
    ) -> tuple[str | None, list[str]]:
        """
        workbook.xml の <sheet name> から要求されたワークシート名を探す

        完全一致が無ければ、前後の空白と大文字小文字を無視して照合する。
        照合できない場合は (None, 候補) を返す。候補は同じ名前に揃う
        ワークシートが複数あればそれらの名前、無ければ似た名前（最大3件）

        Returns:
            (解決したワークシート名 または None, エラー表示用の候補)
        """
        if requested in sheet_names:
            return (requested, [])

        key = requested.strip().casefold()
        same_key = [name for name in sheet_names if name.strip().casefold() == key]
        if len(same_key) == 1:
            return (same_key[0], [])
        if same_key:
            # "Data" と "data " のように区別できない
            return (None, same_key)

        return (None, difflib.get_close_matches(requested, sheet_names, n=3, cutoff=0.6))

    def __enter__(self) -> "Workbook":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def open_workbook(source: str | os.PathLike | IO[bytes]) -> Workbook:
    return Workbook.open(source)
