"""GMAファイルテーブル読み取りモジュール"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from gmaextract.errors import EmptyTableError
from gmaextract.parser.reader import ArchiveReader

# テーブル終端を表すファイル番号
TABLE_TERMINATOR = 0

# エントリごとのCRC32とフラグ
ENTRY_RESERVED_SIZE = 8


@dataclass(frozen=True)
class FileEntry:
    """ファイルテーブルの1エントリ

    ファイル本体はテーブル順にアーカイブ末尾へ連続して格納されているため、
    オフセットは持たない。

    Attributes:
        path: アーカイブに格納された相対パス（そのままの表記）
        size: ファイル本体のバイト数
    """

    path: str
    size: int

    @property
    def relative_path(self) -> PurePosixPath:
        """区切り文字を"/"に正規化した相対パス"""
        return PurePosixPath(self.path.replace("\\", "/"))

    @property
    def is_unsafe(self) -> bool:
        """展開先ディレクトリの外を指す可能性があるパスか

        絶対パス、ドライブ指定、".."を含むパスが該当する。
        """
        relative = self.relative_path
        if relative.is_absolute() or ".." in relative.parts:
            return True
        return bool(relative.parts) and relative.parts[0].endswith(":")


class FileTableReader:
    """ファイルテーブルを読み取るクラス

    ファイル番号0が現れるまでエントリを読み続ける。
    ファイル番号の重複や順序は検証しない。
    """

    def __init__(self, reader: ArchiveReader) -> None:
        self._reader = reader

    async def read(self) -> list[FileEntry]:
        """ファイルテーブルを読み出す

        Returns:
            テーブル順のエントリ一覧（空にはならない）

        Raises:
            EmptyTableError: エントリが1件も無い場合
            TruncatedError: テーブルの途中でアーカイブが終わっている場合
        """
        entries: list[FileEntry] = []

        while True:
            file_number = await self._reader.read_u32()
            if file_number == TABLE_TERMINATOR:
                break

            path = await self._reader.read_cstring()
            size = await self._reader.read_u32()
            await self._reader.skip(ENTRY_RESERVED_SIZE)

            entries.append(FileEntry(path=path, size=size))

        if not entries:
            raise EmptyTableError("アーカイブにファイルが含まれていません")

        return entries
