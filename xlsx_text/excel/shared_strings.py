"""
共有文字列テーブル

sharedStrings.xml の文字列を出現順に読み込み、インデックスで参照できるようにする
"""

import logging
from collections.abc import Iterator
from xml.etree.ElementTree import Element

from xlsx_text.errors import InvalidSharedStringIndexError
from xlsx_text.package import SHARED_STRINGS_PART, OOXMLPackage, local_name

logger = logging.getLogger(__name__)


def collect_text(item: Element) -> str:
    """
    文字列アイテム（<si> またはセルの <is>）のプレーンテキストを取得

    - 直下の <t> はそのまま
    - リッチテキストは各 <r> の <t> を文書順に連結（書式は捨てる）
    - ふりがな（<rPh>）は含めない
    """
    pieces: list[str] = []
    for child in item:
        name = local_name(child.tag)
        if name == "t":
            pieces.append(child.text or "")
        elif name == "r":
            for run_child in child:
                if local_name(run_child.tag) == "t":
                    pieces.append(run_child.text or "")
    return "".join(pieces)


class SharedStringsTable:
    """共有文字列テーブル（読み込み後は不変）"""

    def __init__(self, strings: list[str] | None = None):
        self._strings: list[str] = list(strings) if strings else []

    @classmethod
    def load(cls, package: OOXMLPackage) -> "SharedStringsTable":
        """
        パッケージから共有文字列テーブルを構築

        パーツが無い場合は空のテーブルを返す（参照は常に失敗する）
        """
        if not package.has_part(SHARED_STRINGS_PART):
            logger.info("No shared strings part; using an empty table")
            return cls()

        strings: list[str] = []
        root: Element | None = None
        for event, element in package.iter_events(SHARED_STRINGS_PART):
            if event == "start":
                if root is None:
                    root = element
                continue
            if local_name(element.tag) == "si":
                strings.append(collect_text(element))
                # 処理済みのアイテムを解放してメモリを一定に保つ
                root.clear()

        logger.info(f"Loaded {len(strings)} shared strings")
        return cls(strings)

    def lookup(self, index: int, reference: str | None = None) -> str:
        """
        インデックスで文字列を取得

        Raises:
            InvalidSharedStringIndexError: index < 0 または index >= size
        """
        if index < 0 or index >= len(self._strings):
            raise InvalidSharedStringIndexError(index, len(self._strings), reference)
        return self._strings[index]

    def lookup_text(self, raw: str | None, reference: str | None = None) -> str:
        """セルの <v> の値（ASCII数字のみの文字列）を整数として解釈して参照"""
        # int() が受け付ける空白・符号・"_" 区切りは不正なインデックスとする
        if raw is None or not (raw.isascii() and raw.isdigit()):
            raise InvalidSharedStringIndexError(raw, len(self._strings), reference)
        return self.lookup(int(raw), reference)

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)
