"""
ワークシート読み取りモジュール（行単位のストリーミング）
"""

import logging
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import Element

from xlsx_text.config import config
from xlsx_text.errors import MalformedMarkupError, WorkbookClosedError
from xlsx_text.excel import (
    CellReference,
    CellValueResolver,
    ExcelReferenceCodec,
    MergeRange,
    MergeRangeIndex,
    RawCell,
    collect_text,
)
from xlsx_text.package import get_attribute, local_name

if TYPE_CHECKING:
    from xlsx_text.workbook import Workbook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cell:
    """解決済みのセル（値は常に文字列）"""

    reference: CellReference
    value: str
    range_end: CellReference

    @property
    def coordinate(self) -> str:
        return self.reference.coordinate

    @property
    def row(self) -> int:
        return self.reference.row

    @property
    def column(self) -> int:
        return self.reference.column

    @property
    def is_merged(self) -> bool:
        """結合範囲に含まれるセルかどうか"""
        return self.range_end != self.reference


class Worksheet:
    """ワークシート（Workbookから取得する。Workbookを閉じると使用不可）"""

    def __init__(self, workbook: "Workbook", name: str, part_path: str):
        self.workbook = workbook
        self.name = name
        self.part_path = part_path
        self._merge_index: MergeRangeIndex | None = None

    @property
    def merge_index(self) -> MergeRangeIndex:
        """結合範囲インデックス（初回アクセス時に読み込み）"""
        if self._merge_index is None:
            self._merge_index = MergeRangeIndex.build(
                self.workbook.package, self.part_path
            )
        return self._merge_index

    def stream(self, skip_empty_rows: bool | None = None) -> "WorksheetStream":
        """先頭から読み直す新しいストリームを作成"""
        return WorksheetStream(self, skip_empty_rows)

    def iter_rows(self) -> Iterator[list[Cell]]:
        with self.stream() as rows:
            yield from rows

    def __repr__(self) -> str:
        return f"Worksheet(name={self.name!r}, part_path={self.part_path!r})"


class WorksheetStream:
    """
    ワークシートの行を1行ずつ読み出す前方専用リーダー

    - <row> ごとに <c> を解決し、結合範囲の値を重ね合わせる
    - 結合範囲がかかるのに <c> が無い列はアンカーの値でセルを補完する
    - <row> 要素が無い結合範囲の行は、読み出し時に1行ずつ補完する
    - 一度進んだ行には戻れない（読み直しは新しいストリームで行う）
    - スレッドセーフではない
    """

    def __init__(self, worksheet: Worksheet, skip_empty_rows: bool | None = None):
        self.worksheet = worksheet
        self.skip_empty_rows = (
            config.skip_empty_rows if skip_empty_rows is None else skip_empty_rows
        )
        # 直前に返した行の行番号
        self.row_number: int | None = None

        self._events: Generator[tuple[str, Element], None, None] | None = None
        self._resolver: CellValueResolver | None = None
        self._merge_index: MergeRangeIndex | None = None
        self._sheet_data: Element | None = None
        # 読み込み済みで未解決の <row>（常に高々1行）
        self._held_row: tuple[int, Element] | None = None
        # 補完対象の行範囲 [_next_synth_row, _synth_stop)
        self._next_synth_row = 1
        self._synth_stop = 1
        self._last_row = 0
        self._finished = False
        self._closed = False

    def read_row(self) -> list[Cell] | None:
        """
        次の行を読み出す

        Returns:
            列順に並んだセルのリスト。行が尽きた場合は None

        Raises:
            XlsxTextError: セル値の解決やXMLの解析に失敗した場合
                （失敗した行は読み飛ばされ、次の呼び出しは後続の行から読む）
        """
        if self.worksheet.workbook.closed:
            raise WorkbookClosedError()
        if self._closed:
            return None
        if self._events is None:
            self._start()

        while True:
            cells = self._next_synthesized_row()
            if cells is not None:
                return cells

            if self._held_row is not None:
                row_number, row_element = self._held_row
                self._held_row = None
                cells = self._decode_row(row_element, row_number)
                if cells or not self.skip_empty_rows:
                    self.row_number = row_number
                    return cells
                continue

            if self._finished:
                return None
            self._advance()

    def close(self) -> None:
        if self._events is not None:
            self._events.close()
        self._closed = True
        self._finished = True
        self._held_row = None
        self._synth_stop = self._next_synth_row

    def _start(self) -> None:
        workbook = self.worksheet.workbook
        self._resolver = workbook.cell_value_resolver
        self._merge_index = self.worksheet.merge_index.copy()
        self._events = workbook.package.iter_events(self.worksheet.part_path)
        logger.debug(f"Streaming worksheet '{self.worksheet.name}'")

    def _advance(self) -> None:
        """次の <row> が閉じるまでイベントを読み進める"""
        assert self._events is not None
        for event, element in self._events:
            name = local_name(element.tag)
            if event == "start":
                if name == "sheetData":
                    self._sheet_data = element
                continue

            if name == "row" and self._sheet_data is not None:
                try:
                    row_number = self._row_number_of(element)
                finally:
                    # sheetData から切り離して保持し、メモリを一定に保つ
                    self._sheet_data.clear()
                # 解決に失敗しても同じ行を補完し直さないよう、先に行番号を進める
                self._set_synth_range(self._last_row + 1, row_number)
                self._last_row = max(self._last_row, row_number)
                self._held_row = (row_number, element)
                return
            if name == "sheetData":
                break

        # 行が尽きた: 最終行より後ろの結合範囲の行を補完して終了
        assert self._merge_index is not None
        self._set_synth_range(self._last_row + 1, self._merge_index.last_row() + 1)
        self._finished = True
        self._events.close()

    def _row_number_of(self, row_element: Element) -> int:
        value = get_attribute(row_element, "r")
        if value is None:
            return self._last_row + 1
        try:
            row_number = int(value)
        except ValueError as e:
            raise MalformedMarkupError(self.worksheet.part_path, e) from e
        if row_number < 1:
            raise MalformedMarkupError(self.worksheet.part_path)
        return row_number

    def _set_synth_range(self, start: int, stop: int) -> None:
        """<row> 要素が存在しない行 [start, stop) を補完対象にする"""
        self._next_synth_row = start
        self._synth_stop = max(start, stop)

    def _next_synthesized_row(self) -> list[Cell] | None:
        """
        補完対象の行から、結合範囲の値を持つ次の1行を作成する

        結合範囲がかからない行は飛ばす。対象が尽きたら None
        """
        assert self._merge_index is not None
        while self._next_synth_row < self._synth_stop:
            row_number = self._merge_index.next_covered_row(self._next_synth_row)
            if row_number is None or row_number >= self._synth_stop:
                self._next_synth_row = self._synth_stop
                break

            self._next_synth_row = row_number + 1
            cells = self._overlay(row_number, [], set())
            if cells:
                self.row_number = row_number
                return cells
        return None

    def _decode_row(self, row_element: Element, row_number: int) -> list[Cell]:
        """<row> の <c> を解決し、結合範囲を重ね合わせる"""
        assert self._resolver is not None and self._merge_index is not None

        covering = self._merge_index.ranges_covering(row_number)
        resolved: list[tuple[CellReference, str | None, MergeRange | None]] = []
        explicit_columns: set[int] = set()

        column = 0
        for cell_element in row_element:
            if local_name(cell_element.tag) != "c":
                continue
            raw = self._read_cell(cell_element, row_number, column + 1)
            reference = CellReference.from_string(raw.reference)
            column = reference.column
            explicit_columns.add(column)

            value = self._resolver.resolve(raw)
            merge_range = MergeRangeIndex.range_at(covering, reference.row, column)
            if merge_range is not None and merge_range.is_anchor(reference.row, column):
                if value is not None:
                    self._merge_index.record_anchor_value(merge_range, value)
            resolved.append((reference, value, merge_range))

        # アンカーを記録してから、結合範囲内の他セルにアンカー値を反映
        cells: list[Cell] = []
        for reference, value, merge_range in resolved:
            if merge_range is None:
                range_end = reference
            else:
                range_end = merge_range.end
                if not merge_range.is_anchor(reference.row, reference.column):
                    value = self._merge_index.anchor_value(merge_range)
            if value is not None:
                cells.append(Cell(reference, value, range_end))

        return self._overlay(row_number, cells, explicit_columns, covering)

    def _overlay(
        self,
        row_number: int,
        cells: list[Cell],
        explicit_columns: set[int],
        covering: list[MergeRange] | None = None,
    ) -> list[Cell]:
        """<c> の無い結合範囲内の列をアンカー値で補完し、列順に並べる"""
        assert self._merge_index is not None
        if covering is None:
            covering = self._merge_index.ranges_covering(row_number)

        filled = set(explicit_columns)
        for merge_range in covering:
            anchor_value = self._merge_index.anchor_value(merge_range)
            if anchor_value is None:
                continue
            for column in merge_range.columns:
                if column in filled:
                    continue
                filled.add(column)
                cells.append(
                    Cell(CellReference(row_number, column), anchor_value, merge_range.end)
                )

        # 安定ソート: 同じ列では明示セル（先に追加）が優先される
        cells.sort(key=lambda cell: cell.reference.column)
        return cells

    def _read_cell(self, cell_element: Element, row_number: int, next_column: int) -> RawCell:
        """<c> 要素を読み取る（c -> v | is -> t | r -> t）"""
        reference = get_attribute(cell_element, "r")
        if reference is None:
            reference = ExcelReferenceCodec.encode(row_number, next_column)

        value: str | None = None
        inline_text: str | None = None
        for child in cell_element:
            name = local_name(child.tag)
            if name == "v":
                value = child.text or ""
            elif name == "is":
                inline_text = collect_text(child)

        return RawCell(
            reference=reference,
            type_tag=get_attribute(cell_element, "t"),
            style=get_attribute(cell_element, "s"),
            value=value,
            inline_text=inline_text,
        )

    def __iter__(self) -> "WorksheetStream":
        return self

    def __next__(self) -> list[Cell]:
        row = self.read_row()
        if row is None:
            raise StopIteration
        return row

    def __enter__(self) -> "WorksheetStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
