"""ファイル形式検出モジュール

ファイル先頭の3バイトを調べ、Garry's Mod関連ファイルの種別を判定する。
"""

from enum import Enum
from pathlib import Path

# 判定に使う先頭バイト数
_MAGIC_LENGTH = 3


class FileType(Enum):
    """検出可能なファイル種別

    GMAD: 非圧縮のGMAアドオンアーカイブ
    LZMA: LZMA圧縮されたGMA（Workshopからの生ダウンロード）
    DUPE: Advanced Duplicatorのデータ
    GMS: Garry's Modのセーブデータ
    UNKNOWN: 判定できない形式
    """

    GMAD = "gmad"
    LZMA = "lzma"
    DUPE = "dupe"
    GMS = "gms"
    UNKNOWN = "unknown"


# 先頭3バイト（16進表記）と種別の対応
_SIGNATURES: dict[str, FileType] = {
    "474D41": FileType.GMAD,
    "5D0000": FileType.LZMA,
    "445550": FileType.DUPE,
    "474D53": FileType.GMS,
}

_EXTENSIONS: dict[FileType, str] = {
    FileType.GMAD: ".gma",
    FileType.LZMA: ".7z",
    FileType.DUPE: ".dupe",
    FileType.GMS: ".gms",
}


def detect_file_type(path: Path) -> FileType:
    """ファイルの種別を判定する

    Args:
        path: 判定対象のファイルパス

    Returns:
        判定されたファイル種別（3バイトに満たないファイルはUNKNOWN）

    Raises:
        FileNotFoundError: ファイルが存在しない場合
    """
    with open(path, "rb") as f:
        head = f.read(_MAGIC_LENGTH)

    if len(head) < _MAGIC_LENGTH:
        return FileType.UNKNOWN
    return _SIGNATURES.get(head.hex().upper(), FileType.UNKNOWN)


def extension_for(file_type: FileType) -> str | None:
    """ファイル種別に対応する拡張子を返す

    Returns:
        ".gma"などの拡張子、UNKNOWNの場合はNone
    """
    return _EXTENSIONS.get(file_type)
