"""
結合セル範囲インデックス

ワークシートの <mergeCells> 宣言を読み込み、行ごとに該当する結合範囲と
アンカー（左上セル）の値を管理するヘルパークラス
"""

import logging
from collections.abc import Iterator
from xml.etree.ElementTree import Element

from xlsx_text.errors import MalformedMarkupError
from xlsx_text.excel.reference import ExcelReferenceCodec, MergeRange
from xlsx_text.package import OOXMLPackage, get_attribute, local_name

logger = logging.getLogger(__name__)


class MergeRangeIndex:
    """
    ワークシート単位の結合範囲レジストリ

    範囲は宣言順に保持する。範囲同士の重なりは検証しない
    （重なった場合にどの範囲が優先されるかは未定義）
    """

    def __init__(self, ranges: list[MergeRange] | None = None):
        self._ranges: list[MergeRange] = list(ranges) if ranges else []
        self._anchor_values: dict[MergeRange, str] = {}

    @classmethod
    def build(cls, package: OOXMLPackage, part_name: str) -> "MergeRangeIndex":
        """
        ワークシートパーツから結合範囲を読み込む

        <mergeCells> は <sheetData> の後ろにあるため、行データを読み捨てながら
        パーツ全体を1回走査する

        Args:
            package: パッケージ
            part_name: ワークシートパーツのパス

        Raises:
            MalformedMarkupError: ref属性が欠落・不正な場合
        """
        ranges: list[MergeRange] = []
        sheet_data: Element | None = None

        events = package.iter_events(part_name)
        try:
            for event, element in events:
                name = local_name(element.tag)
                if event == "start":
                    if name == "sheetData":
                        sheet_data = element
                    continue

                if name == "row" and sheet_data is not None:
                    # 行データは不要なので即座に解放
                    sheet_data.clear()
                elif name == "mergeCell":
                    ref = get_attribute(element, "ref")
                    if ref is None:
                        raise MalformedMarkupError(part_name)
                    ranges.append(ExcelReferenceCodec.parse_range(ref))
                elif name == "mergeCells":
                    break
        finally:
            # mergeCells の後ろは読まずにパーツを閉じる
            events.close()

        logger.debug(f"Loaded {len(ranges)} merge ranges from {part_name}")
        return cls(ranges)

    @property
    def ranges(self) -> list[MergeRange]:
        return list(self._ranges)

    def copy(self) -> "MergeRangeIndex":
        """同じ範囲を持ち、アンカー値が未記録のインデックス（ストリームごとに使う）"""
        return MergeRangeIndex(self._ranges)

    def ranges_covering(self, row: int) -> list[MergeRange]:
        """行番号を含む結合範囲を宣言順に返す（1行につき1回呼ぶ想定）"""
        return [merge_range for merge_range in self._ranges if merge_range.covers_row(row)]

    @staticmethod
    def range_at(
        covering: list[MergeRange], row: int, column: int
    ) -> MergeRange | None:
        """ranges_covering() の結果から、指定セルを含む範囲を探す"""
        for merge_range in covering:
            if merge_range.covers(row, column):
                return merge_range
        return None

    def record_anchor_value(self, merge_range: MergeRange, value: str) -> None:
        """アンカーセルの解決済みの値を記録"""
        self._anchor_values[merge_range] = value

    def anchor_value(self, merge_range: MergeRange) -> str | None:
        """アンカーセルの値（アンカーが値を持たなかった場合は None）"""
        return self._anchor_values.get(merge_range)

    def next_covered_row(self, row: int) -> int | None:
        """row 以降で最初に結合範囲がかかる行（無ければ None）"""
        return min(
            (
                max(merge_range.anchor.row, row)
                for merge_range in self._ranges
                if merge_range.end.row >= row
            ),
            default=None,
        )

    def last_row(self) -> int:
        """結合範囲がかかる最終行（範囲が無ければ0）"""
        return max((merge_range.end.row for merge_range in self._ranges), default=0)

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[MergeRange]:
        return iter(self._ranges)
