"""
OOXMLパッケージアクセスモジュール

zipコンテナからパーツを開き、XMLをpull形式（start/endイベント）で読み出す
"""

import logging
import os
from collections.abc import Generator
from typing import IO, Any
from xml.etree.ElementTree import Element, ParseError, iterparse
from zipfile import BadZipFile, ZipFile

from openpyxl.xml.constants import (
    ARC_SHARED_STRINGS,
    ARC_STYLE,
    ARC_WORKBOOK,
    ARC_WORKBOOK_RELS,
    PACKAGE_XL,
)

from xlsx_text.errors import (
    InvalidPackageError,
    MalformedMarkupError,
    MissingRequiredPartError,
    WorkbookClosedError,
)

logger = logging.getLogger(__name__)

# 固定パーツパス
RELATIONSHIPS_PART = ARC_WORKBOOK_RELS  # xl/_rels/workbook.xml.rels
WORKBOOK_PART = ARC_WORKBOOK  # xl/workbook.xml
SHARED_STRINGS_PART = ARC_SHARED_STRINGS  # xl/sharedStrings.xml
STYLES_PART = ARC_STYLE  # xl/styles.xml


def local_name(tag: str) -> str:
    """名前空間を除いた要素名・属性名（"{ns}row" -> "row"）"""
    return tag.rpartition("}")[2]


def get_attribute(element: Element, name: str) -> str | None:
    """
    属性値を取得（名前空間付き属性もローカル名で一致させる）

    transitional/strict どちらの名前空間でも r:id を読めるようにするため
    """
    value = element.get(name)
    if value is not None:
        return value
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


def resolve_part_path(target: str) -> str:
    """
    リレーションシップのTargetをパッケージ内パスに解決

    相対パスは xl/ 基準、"/" 始まりはパッケージルート基準
    """
    if target.startswith("/"):
        path = target.lstrip("/")
    else:
        path = f"{PACKAGE_XL}/{target}"

    # "worksheets/../sheet1.xml" のような表記を正規化
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


class OOXMLPackage:
    """zipベースのスプレッドシートパッケージ（読み取り専用）"""

    def __init__(self, source: str | os.PathLike | IO[bytes]):
        """
        Args:
            source: ファイルパス、またはシーク可能なバイナリストリーム
        """
        self.name = os.fspath(source) if isinstance(source, (str, os.PathLike)) else "<stream>"
        try:
            self._archive = ZipFile(source)
        except BadZipFile as e:
            raise InvalidPackageError(self.name, e) from e
        self._closed = False
        logger.debug(f"Opened package {self.name} ({len(self._archive.namelist())} parts)")

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._archive.close()
            self._closed = True

    def has_part(self, part_name: str) -> bool:
        self._ensure_open()
        try:
            self._archive.getinfo(part_name)
        except KeyError:
            return False
        return True

    def open_part(self, part_name: str) -> IO[bytes]:
        """
        パーツを展開しながら読むストリームを開く（呼び出しごとに独立）

        Raises:
            MissingRequiredPartError: パーツが存在しない場合
        """
        self._ensure_open()
        try:
            return self._archive.open(part_name)
        except KeyError as e:
            raise MissingRequiredPartError(part_name, e) from e

    def iter_events(
        self, part_name: str, events: tuple[str, ...] = ("start", "end")
    ) -> Generator[tuple[str, Element], None, None]:
        """
        パーツのXMLイベントを順に返す

        Args:
            part_name: パーツパス
            events: iterparseに渡すイベント種別

        Yields:
            (event, element)のタプル

        Raises:
            MalformedMarkupError: XMLとして不正な場合
        """
        stream = self.open_part(part_name)
        try:
            for event, element in iterparse(stream, events=events):
                yield event, element
        except ParseError as e:
            raise MalformedMarkupError(part_name, e) from e
        finally:
            stream.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise WorkbookClosedError()

    def __enter__(self) -> "OOXMLPackage":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
