"""
セル値解決ユーティリティ

<c> 要素の (値, t属性, s属性) をプレーンテキストに解決する
"""

from dataclasses import dataclass

from xlsx_text.errors import (
    CellComputationError,
    UnsupportedCellTypeError,
    UnsupportedNumberFormatError,
)
from xlsx_text.excel.number_formats import NumberFormatTable
from xlsx_text.excel.shared_strings import SharedStringsTable

# 値をそのまま返す型
VERBATIM_TYPES = frozenset({"n", "str"})


@dataclass(frozen=True)
class RawCell:
    """解決前のセル（<c> 要素の内容）"""

    reference: str
    type_tag: str | None = None
    style: str | None = None
    value: str | None = None
    inline_text: str | None = None

    @property
    def payload(self) -> str | None:
        """inlineStr は <is> のテキスト、それ以外は <v> の値"""
        if self.type_tag == "inlineStr" and self.inline_text is not None:
            return self.inline_text
        return self.value

    @property
    def has_payload(self) -> bool:
        return self.payload is not None


class CellValueResolver:
    """セル型に応じた値の解決（失敗は例外として呼び出し元に伝播する）"""

    def __init__(
        self,
        shared_strings: SharedStringsTable,
        number_formats: NumberFormatTable,
    ):
        self.shared_strings = shared_strings
        self.number_formats = number_formats

    def resolve(self, cell: RawCell) -> str | None:
        """
        セルの値をテキストに解決

        | t属性              | 結果                                          |
        |--------------------|-----------------------------------------------|
        | s                  | 共有文字列テーブルを参照                      |
        | b                  | "0" -> "FALSE"、それ以外 -> "TRUE"            |
        | n / str            | 値そのまま                                    |
        | inlineStr          | <is> 内のテキストを連結                       |
        | e                  | CellComputationError                          |
        | d                  | UnsupportedCellTypeError("d")                 |
        | なし（s属性あり）  | General/Text書式なら値そのまま、他は例外      |
        | なし（s属性なし）  | 値そのまま                                    |
        | その他             | UnsupportedCellTypeError                      |

        Returns:
            解決済みの値。値を持たないセルは None（行の出力から除外される）

        Raises:
            InvalidSharedStringIndexError, UnsupportedCellTypeError,
            UnsupportedNumberFormatError, CellComputationError
        """
        payload = cell.payload
        if payload is None:
            return None

        type_tag = cell.type_tag
        if type_tag == "s":
            return self.shared_strings.lookup_text(payload, cell.reference)
        elif type_tag == "b":
            return "FALSE" if payload == "0" else "TRUE"
        elif type_tag in VERBATIM_TYPES or type_tag == "inlineStr":
            return payload
        elif type_tag == "e":
            raise CellComputationError(cell.reference, payload)
        elif type_tag is None:
            if cell.style is None:
                return payload
            return self._resolve_styled(payload, cell.style, cell.reference)

        raise UnsupportedCellTypeError(type_tag, cell.reference)

    def _resolve_styled(self, payload: str, style: str, reference: str) -> str:
        """型なし・スタイルありのセル（数値書式で判定）"""
        try:
            style_index = int(style)
        except ValueError:
            raise UnsupportedNumberFormatError(None, reference)

        format_code = self.number_formats.resolve(style_index)
        if NumberFormatTable.is_passthrough(format_code):
            return payload
        raise UnsupportedNumberFormatError(format_code, reference)
