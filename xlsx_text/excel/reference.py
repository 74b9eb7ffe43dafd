"""
セル参照ユーティリティ

セル参照（"B12"）と行・列番号の相互変換、結合範囲（"A1:B2"）の解析を担当する
"""

from dataclasses import dataclass

from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.utils.cell import coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

from xlsx_text.errors import InvalidReferenceError


@dataclass(frozen=True, order=True)
class CellReference:
    """セル参照（行・列とも1始まり）"""

    row: int
    column: int

    def __post_init__(self):
        if self.row < 1 or self.column < 1:
            raise InvalidReferenceError(f"row={self.row}, column={self.column}")

    @classmethod
    def from_string(cls, text: str) -> "CellReference":
        row, column = ExcelReferenceCodec.decode(text)
        return cls(row, column)

    @property
    def coordinate(self) -> str:
        """正規化されたテキスト表記（例: "B12"）"""
        return ExcelReferenceCodec.encode(self.row, self.column)

    def __str__(self) -> str:
        return self.coordinate


@dataclass(frozen=True)
class MergeRange:
    """結合セル範囲（anchorは左上、endは右下）"""

    anchor: CellReference
    end: CellReference

    def __post_init__(self):
        if self.anchor.row > self.end.row or self.anchor.column > self.end.column:
            raise InvalidReferenceError(f"{self.anchor}:{self.end}")

    def covers_row(self, row: int) -> bool:
        return self.anchor.row <= row <= self.end.row

    def covers(self, row: int, column: int) -> bool:
        return (
            self.covers_row(row) and self.anchor.column <= column <= self.end.column
        )

    def is_anchor(self, row: int, column: int) -> bool:
        return self.anchor.row == row and self.anchor.column == column

    @property
    def columns(self) -> range:
        return range(self.anchor.column, self.end.column + 1)

    def __str__(self) -> str:
        return f"{self.anchor}:{self.end}"


class ExcelReferenceCodec:
    """セル参照の変換・検証（全て staticmethod）"""

    @staticmethod
    def decode(text: str) -> tuple[int, int]:
        """
        セル参照を (row, column) に変換

        Args:
            text: セル参照（例: "B12"、大文字・小文字は区別しない）

        Returns:
            (row, column)のタプル（どちらも1始まり）

        Raises:
            InvalidReferenceError: 列文字・行番号の欠落、A-Z/0-9以外の文字、
                行番号0、ZZZを超える列の場合
        """
        # "$A$1" のような絶対参照や非ASCII数字はここで弾く
        if not isinstance(text, str) or not text.isascii() or "$" in text:
            raise InvalidReferenceError(str(text))

        try:
            column_letter, row = coordinate_from_string(text.upper())
            column = column_index_from_string(column_letter)
        except (CellCoordinatesException, ValueError) as e:
            raise InvalidReferenceError(text, e) from e

        return (row, column)

    @staticmethod
    def encode(row: int, column: int) -> str:
        """
        (row, column) をセル参照に変換

        列は26進の全単射表記（"Z" の次は "AA"、"Z0" ではない）

        Args:
            row: 行番号（1始まり）
            column: 列番号（1始まり、最大18278 = "ZZZ"）

        Returns:
            セル参照（例: "AA3"）
        """
        if row < 1 or column < 1:
            raise InvalidReferenceError(f"row={row}, column={column}")

        try:
            column_letter = get_column_letter(column)
        except ValueError as e:
            raise InvalidReferenceError(f"row={row}, column={column}", e) from e

        return f"{column_letter}{row}"

    @staticmethod
    def parse_range(range_str: str) -> MergeRange:
        """
        セル範囲文字列を MergeRange に変換

        Args:
            range_str: セル範囲（例: "A1:B2"）。単一セル（"C5"）は1x1の範囲

        Returns:
            MergeRange

        Raises:
            InvalidReferenceError: 参照が不正、または逆順序の範囲（例: "B2:A1"）
        """
        if not isinstance(range_str, str):
            raise InvalidReferenceError(str(range_str))

        if ":" in range_str:
            start, end = range_str.split(":", 1)
        else:
            start = end = range_str

        anchor = CellReference.from_string(start)
        end_ref = CellReference.from_string(end)

        # 逆順序の範囲を検出
        if end_ref.row < anchor.row or end_ref.column < anchor.column:
            raise InvalidReferenceError(range_str)

        return MergeRange(anchor, end_ref)

    @staticmethod
    def calculate_range_size(range_str: str) -> tuple[int, int]:
        """
        セル範囲文字列から行数と列数を計算

        Args:
            range_str: セル範囲（例: "A1:D10"）

        Returns:
            (rows, cols)のタプル
        """
        merge_range = ExcelReferenceCodec.parse_range(range_str)
        rows = merge_range.end.row - merge_range.anchor.row + 1
        cols = merge_range.end.column - merge_range.anchor.column + 1
        return (rows, cols)
