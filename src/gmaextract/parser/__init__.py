"""Parser module for gmaextract.

GMAアーカイブのヘッダーとファイルテーブルを前方専用ストリームから読み出す。
ファイル先頭のマジックバイトによる形式判定機能も提供する。
"""

from gmaextract.parser.detector import FileType, detect_file_type, extension_for
from gmaextract.parser.header import GMA_SIGNATURE, ArchiveMetadata, HeaderParser
from gmaextract.parser.reader import ArchiveReader, AsyncByteStream, decode_legacy
from gmaextract.parser.table import FileEntry, FileTableReader

__all__ = [
    "ArchiveMetadata",
    "ArchiveReader",
    "AsyncByteStream",
    "FileEntry",
    "FileTableReader",
    "FileType",
    "GMA_SIGNATURE",
    "HeaderParser",
    "decode_legacy",
    "detect_file_type",
    "extension_for",
]
