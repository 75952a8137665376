"""ファイル本体のストリーミング展開モジュール

ファイルテーブルの順にアーカイブ末尾のデータを読み進め、
各エントリの宣言サイズ分だけを新しいファイルへコピーする。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os

from gmaextract.cancellation import CancellationToken
from gmaextract.errors import TruncatedError
from gmaextract.parser.header import ArchiveMetadata
from gmaextract.parser.reader import ArchiveReader
from gmaextract.parser.table import FileEntry

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 81920

# Windowsでファイル名に使用できない文字（全プラットフォームで同じ規則を適用する）
_INVALID_FILENAME_CHARS = frozenset('"<>|:*?\\/' + "".join(chr(code) for code in range(32)))


def sanitize_addon_name(name: str) -> str:
    """アドオン名からファイル名に使用できない文字を取り除く

    Args:
        name: アドオン名

    Returns:
        ディレクトリ名として使用できる文字列
    """
    return "".join(char for char in name if char not in _INVALID_FILENAME_CHARS)


@dataclass(frozen=True)
class ExtractProgress:
    """展開の進捗情報

    エントリが1件展開されるたびに新しいインスタンスが作られる。

    Attributes:
        total_files: 展開対象のファイル総数
        files_processed: 展開が完了したファイル数（1からtotal_filesまで）
        current_file: 直前に展開が完了したファイルのパス
    """

    total_files: int
    files_processed: int
    current_file: str


class ProgressCallback(Protocol):
    """進捗コールバックのプロトコル

    展開処理と同じ実行コンテキストから同期的に呼び出される。
    UIスレッドへの受け渡しは呼び出し側の責任とする。
    """

    def __call__(self, progress: ExtractProgress) -> None:
        """進捗情報を受け取るコールバック

        Args:
            progress: 現在の進捗情報
        """
        ...


class StreamingExtractor:
    """エントリを順番に展開するクラス

    使用例:
        >>> extractor = StreamingExtractor(reader, Path("out"), token)
        >>> addon_dir = await extractor.extract(metadata, entries)
    """

    def __init__(
        self,
        reader: ArchiveReader,
        output_root: Path,
        token: CancellationToken,
        progress_callback: ProgressCallback | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """展開処理を初期化する

        Args:
            reader: ファイルテーブル直後に位置するリーダー
            output_root: 展開先のルートディレクトリ
            token: キャンセル用トークン
            progress_callback: 進捗通知用コールバック（オプション）
            buffer_size: 1回のコピーで読み出す最大バイト数

        Raises:
            ValueError: buffer_sizeが0以下の場合
        """
        if buffer_size <= 0:
            raise ValueError(f"バッファサイズは正の値である必要があります: {buffer_size}")

        self._reader = reader
        self._output_root = output_root
        self._token = token
        self._progress_callback = progress_callback
        self._buffer_size = buffer_size
        self._files_extracted = 0

    @property
    def files_extracted(self) -> int:
        """展開が完了したファイル数"""
        return self._files_extracted

    def addon_dir_for(self, metadata: ArchiveMetadata) -> Path:
        """アドオンの展開先ディレクトリを返す"""
        return self._output_root / sanitize_addon_name(metadata.name)

    async def extract(self, metadata: ArchiveMetadata, entries: list[FileEntry]) -> Path:
        """全エントリをテーブル順に展開する

        Args:
            metadata: アドオンのメタデータ
            entries: 空でないファイルテーブル

        Returns:
            アドオンの展開先ディレクトリ

        Raises:
            ExtractCancelledError: キャンセルされた場合
            TruncatedError: アーカイブのデータが宣言サイズに満たない場合
            OSError: ディレクトリやファイルの作成に失敗した場合
        """
        addon_dir = self.addon_dir_for(metadata)
        await aiofiles.os.makedirs(addon_dir, exist_ok=True)

        total_files = len(entries)

        for index, entry in enumerate(entries, start=1):
            self._token.raise_if_cancelled()

            if entry.is_unsafe:
                logger.warning(f"展開先ディレクトリの外を指すパスです: {entry.path}")

            destination = addon_dir / entry.relative_path
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)

            await self._copy_entry(entry, destination)

            self._files_extracted = index
            logger.debug(f"展開: {entry.path} ({entry.size} bytes)")

            if self._progress_callback is not None:
                self._progress_callback(
                    ExtractProgress(
                        total_files=total_files,
                        files_processed=index,
                        current_file=entry.path,
                    )
                )

        return addon_dir

    async def _copy_entry(self, entry: FileEntry, destination: Path) -> None:
        """エントリ1件分のバイト列をコピーする

        Raises:
            ExtractCancelledError: コピー中にキャンセルされた場合
            TruncatedError: 宣言サイズに達する前にアーカイブが終わった場合
        """
        remaining = entry.size

        async with aiofiles.open(destination, "wb") as output:
            while remaining > 0:
                self._token.raise_if_cancelled()

                chunk = await self._reader.read_chunk(min(self._buffer_size, remaining))
                if not chunk:
                    raise TruncatedError(
                        f"{entry.path} のデータが不足しています: "
                        f"{entry.size} バイト中 {entry.size - remaining} バイトで終端に達しました"
                    )

                await output.write(chunk)
                remaining -= len(chunk)
