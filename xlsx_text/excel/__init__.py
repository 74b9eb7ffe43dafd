"""
Excel処理ヘルパーモジュール

ワークシートのストリーミング読み取りが依存する参照変換・参照テーブル群
"""

from xlsx_text.excel.cell_value import CellValueResolver, RawCell
from xlsx_text.excel.merge_range_index import MergeRangeIndex
from xlsx_text.excel.number_formats import BUILTIN_NUMBER_FORMATS, NumberFormatTable
from xlsx_text.excel.reference import CellReference, ExcelReferenceCodec, MergeRange
from xlsx_text.excel.shared_strings import SharedStringsTable, collect_text

__all__ = [
    "BUILTIN_NUMBER_FORMATS",
    "CellReference",
    "CellValueResolver",
    "ExcelReferenceCodec",
    "MergeRange",
    "MergeRangeIndex",
    "NumberFormatTable",
    "RawCell",
    "SharedStringsTable",
    "collect_text",
]
