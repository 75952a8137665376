"""GMAアーカイブ用の前方専用リーダー

アーカイブのバイトストリームを先頭から一方向にのみ読み進めるカーソルを提供する。
後方へのシークは一切行わず、「指定バイト数を読む」「指定バイト数を読み飛ばす」
操作だけでヘッダー、ファイルテーブル、ファイル本体を順に消費する。
"""

from __future__ import annotations

import codecs
import struct
from typing import Protocol

from gmaextract.errors import InvalidFormatError, TruncatedError

# アドオン名やパスはWindows-1252の1バイト文字列として格納されている
LEGACY_ENCODING = "cp1252"

# NUL終端文字列の上限長（不正なアーカイブで際限なく読み続けないため）
MAX_CSTRING_LENGTH = 1024 * 1024

_FILL_SIZE = 4096
_U32 = struct.Struct("<I")
_DECODE_ERRORS = "gmaextract-latin1"


def _latin1_fallback(error: UnicodeError) -> tuple[str, int]:
    """cp1252で未定義のバイト(0x81, 0x8D, 0x8F, 0x90, 0x9D)を同じコードポイントに写す"""
    if not isinstance(error, UnicodeDecodeError):
        raise error
    return error.object[error.start : error.end].decode("latin-1"), error.end


codecs.register_error(_DECODE_ERRORS, _latin1_fallback)


def decode_legacy(data: bytes) -> str:
    """1バイト文字コードのバイト列を文字列に変換する

    Args:
        data: NUL終端を含まないバイト列

    Returns:
        デコードされた文字列
    """
    return data.decode(LEGACY_ENCODING, errors=_DECODE_ERRORS)


class AsyncByteStream(Protocol):
    """非同期に読み出せるバイトストリーム

    aiofilesで開いたバイナリファイルなどが該当する。
    """

    async def read(self, size: int = -1) -> bytes:
        """最大sizeバイトを読み出す（終端では空のバイト列）"""
        ...


class ArchiveReader:
    """アーカイブを前方にのみ読み進めるカーソル

    小さな読み取り（整数、NUL終端文字列）は内部バッファから提供し、
    ファイル本体のコピーはread_chunk()で固定サイズずつ取り出す。

    使用例:
        >>> async with aiofiles.open(path, "rb") as f:
        ...     reader = ArchiveReader(f)
        ...     signature = await reader.read_exact(4)
    """

    def __init__(self, stream: AsyncByteStream) -> None:
        """リーダーを初期化する

        Args:
            stream: 読み取り元のストリーム（現在位置から読み始める）
        """
        self._stream = stream
        self._buffer = bytearray()
        self._position = 0

    @property
    def position(self) -> int:
        """これまでに消費したバイト数"""
        return self._position

    async def _fill(self, minimum: int) -> bool:
        """バッファに少なくともminimumバイトを確保する

        Returns:
            確保できた場合True、ストリームが先に終端に達した場合False
        """
        while len(self._buffer) < minimum:
            data = await self._stream.read(max(_FILL_SIZE, minimum - len(self._buffer)))
            if not data:
                return False
            self._buffer.extend(data)
        return True

    def _consume(self, size: int) -> bytes:
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        self._position += size
        return data

    async def read_exact(self, size: int) -> bytes:
        """ちょうどsizeバイトを読み出す

        Args:
            size: 読み出すバイト数

        Returns:
            読み出したバイト列

        Raises:
            TruncatedError: ストリームの残りがsizeバイトに満たない場合
        """
        if not await self._fill(size):
            raise TruncatedError(
                f"アーカイブが途中で終わっています: オフセット {self._position} で "
                f"{size} バイトを要求しましたが残りは {len(self._buffer)} バイトです"
            )
        return self._consume(size)

    async def skip(self, size: int) -> None:
        """sizeバイトを読み飛ばす

        Raises:
            TruncatedError: ストリームの残りがsizeバイトに満たない場合
        """
        await self.read_exact(size)

    async def read_u32(self) -> int:
        """リトルエンディアンの符号なし32ビット整数を読み出す"""
        return int(_U32.unpack(await self.read_exact(_U32.size))[0])

    async def read_cstring(self) -> str:
        """NUL終端の1バイト文字列を読み出す

        終端のNULバイトは消費されるが、戻り値には含まれない。

        Raises:
            TruncatedError: NULバイトが現れる前にストリームが終わった場合
            InvalidFormatError: 文字列がMAX_CSTRING_LENGTHを超える場合
        """
        searched = 0
        while True:
            terminator = self._buffer.find(0, searched)
            if terminator >= 0:
                raw = self._consume(terminator)
                self._consume(1)
                return decode_legacy(raw)

            searched = len(self._buffer)
            if searched > MAX_CSTRING_LENGTH:
                raise InvalidFormatError(
                    f"NUL終端文字列が長すぎます (オフセット {self._position})"
                )
            if not await self._fill(searched + 1):
                raise TruncatedError(
                    f"NUL終端文字列の途中でアーカイブが終わっています (オフセット {self._position})"
                )

    async def read_chunk(self, size: int) -> bytes:
        """最大sizeバイトを読み出す

        バッファに残っているデータを優先して返し、空であればストリームから直接読む。

        Returns:
            読み出したバイト列（ストリーム終端では空）
        """
        if self._buffer:
            return self._consume(min(size, len(self._buffer)))

        data = await self._stream.read(size)
        self._position += len(data)
        return data
