"""GMAヘッダー解析モジュール

アーカイブ先頭のシグネチャを検証し、アドオン名・説明・作者を読み出す。
展開に不要なバージョンやタイムスタンプなどの固定長領域は読み飛ばす。
"""

from __future__ import annotations

from dataclasses import dataclass

from gmaextract.errors import InvalidFormatError, TruncatedError
from gmaextract.parser.reader import ArchiveReader

# "GMAD" (リトルエンディアンのu32として 0x44414D47)
GMA_SIGNATURE = b"GMAD"

# フォーマットバージョン、SteamID、タイムスタンプ、必須コンテンツ
HEADER_RESERVED_SIZE = 18

# アドオンバージョン
ADDON_VERSION_SIZE = 4


@dataclass(frozen=True)
class ArchiveMetadata:
    """アドオンのメタデータ

    Attributes:
        name: アドオン名
        description: アドオンの説明
        author: 作者名
    """

    name: str
    description: str
    author: str


class HeaderParser:
    """GMAヘッダーを解析するクラス"""

    def __init__(self, reader: ArchiveReader) -> None:
        """パーサーを初期化する

        Args:
            reader: アーカイブ先頭に位置するリーダー
        """
        self._reader = reader

    async def parse(self) -> ArchiveMetadata:
        """ヘッダーを読み出してメタデータを返す

        Returns:
            アドオンのメタデータ

        Raises:
            InvalidFormatError: シグネチャが一致しない場合
            TruncatedError: シグネチャ以降でアーカイブが途切れている場合
        """
        try:
            signature = await self._reader.read_exact(len(GMA_SIGNATURE))
        except TruncatedError as e:
            raise InvalidFormatError("GMAシグネチャを読み取れません") from e

        if signature != GMA_SIGNATURE:
            raise InvalidFormatError(f"GMAアーカイブではありません (シグネチャ: {signature!r})")

        await self._reader.skip(HEADER_RESERVED_SIZE)

        name = await self._reader.read_cstring()
        description = await self._reader.read_cstring()
        author = await self._reader.read_cstring()

        await self._reader.skip(ADDON_VERSION_SIZE)

        return ArchiveMetadata(name=name, description=description, author=author)
