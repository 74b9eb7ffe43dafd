"""
数値書式テーブル

セルのスタイル番号（s属性）から書式コードを解決する
組み込み書式に styles.xml のカスタム書式を上書きして構築する
"""

import logging

from openpyxl.styles.numbers import FORMAT_GENERAL, FORMAT_TEXT

from xlsx_text.errors import MalformedMarkupError
from xlsx_text.package import STYLES_PART, OOXMLPackage, get_attribute, local_name

logger = logging.getLogger(__name__)

# 組み込み書式（id 0-49 のうち定義済みのもの）
BUILTIN_NUMBER_FORMATS: dict[int, str] = {
    0: FORMAT_GENERAL,
    1: "0",
    2: "0.00",
    3: "#,##0",
    4: "#,##0.00",
    9: "0%",
    10: "0.00%",
    11: "0.00E+00",
    12: "# ?/?",
    13: "# ??/??",
    14: "mm-dd-yy",
    15: "d-mmm-yy",
    16: "d-mmm",
    17: "mmm-yy",
    18: "h:mm AM/PM",
    19: "h:mm:ss AM/PM",
    20: "h:mm",
    21: "h:mm:ss",
    22: "m/d/yy h:mm",
    37: "#,##0 ;(#,##0)",
    38: "#,##0 ;[Red](#,##0)",
    39: "#,##0.00;(#,##0.00)",
    40: "#,##0.00;[Red](#,##0.00)",
    45: "mm:ss",
    46: "[h]:mm:ss",
    47: "mmss.0",
    48: "##0.0E+0",
    49: FORMAT_TEXT,
}

# 値をそのまま文字列として通す書式（General / Text）
PASSTHROUGH_FORMATS = frozenset({BUILTIN_NUMBER_FORMATS[0], BUILTIN_NUMBER_FORMATS[49]})


class NumberFormatTable:
    """書式ID -> 書式コード と スタイル番号 -> 書式ID の対応表（読み込み後は不変）"""

    def __init__(
        self,
        formats: dict[int, str] | None = None,
        cell_xfs: list[int] | None = None,
    ):
        self._formats: dict[int, str] = dict(BUILTIN_NUMBER_FORMATS)
        if formats:
            self._formats.update(formats)
        self._cell_xfs: list[int] = list(cell_xfs) if cell_xfs else []

    @classmethod
    def load(cls, package: OOXMLPackage) -> "NumberFormatTable":
        """
        styles.xml から書式テーブルを構築

        - <numFmts>/<numFmt numFmtId formatCode> で組み込み書式を追加・上書き
        - <cellXfs>/<xf numFmtId> の並び順がスタイル番号
          （<cellStyleXfs> の <xf> は対象外）

        パーツが無い場合は組み込み書式のみのテーブルを返す
        """
        if not package.has_part(STYLES_PART):
            logger.info("No styles part; using builtin number formats only")
            return cls()

        custom_formats: dict[int, str] = {}
        cell_xfs: list[int] = []
        in_num_fmts = False
        in_cell_xfs = False

        try:
            for event, element in package.iter_events(STYLES_PART):
                name = local_name(element.tag)
                if name == "numFmts":
                    in_num_fmts = event == "start"
                    continue
                if name == "cellXfs":
                    in_cell_xfs = event == "start"
                    continue
                if event != "start":
                    continue

                # <dxfs>/<dxf> 内の numFmt は条件付き書式用なので対象外
                if name == "numFmt" and in_num_fmts:
                    format_id = int(get_attribute(element, "numFmtId") or "")
                    custom_formats[format_id] = get_attribute(element, "formatCode") or ""
                elif name == "xf" and in_cell_xfs:
                    cell_xfs.append(int(get_attribute(element, "numFmtId") or "0"))
        except ValueError as e:
            raise MalformedMarkupError(STYLES_PART, e) from e

        logger.info(
            f"Loaded {len(custom_formats)} custom number formats and {len(cell_xfs)} cell styles"
        )
        return cls(custom_formats, cell_xfs)

    def resolve(self, style_index: int) -> str | None:
        """
        スタイル番号から書式コードを解決

        Returns:
            書式コード。範囲外、または書式IDが未登録の場合は None
        """
        if style_index < 0 or style_index >= len(self._cell_xfs):
            return None
        return self._formats.get(self._cell_xfs[style_index])

    def format_code(self, format_id: int) -> str | None:
        return self._formats.get(format_id)

    @staticmethod
    def is_passthrough(format_code: str | None) -> bool:
        """General / Text 書式かどうか（未解決は False）"""
        return format_code in PASSTHROUGH_FORMATS

    @property
    def style_count(self) -> int:
        return len(self._cell_xfs)
