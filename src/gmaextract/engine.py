"""GMA展開処理のオーケストレーション

このモジュールは、HeaderParser -> FileTableReader -> StreamingExtractor -> MetadataWriter
の各コンポーネントを1回のキャンセル可能な操作として順に実行し、
結果をExtractOutcomeに変換して呼び出し側へ返す。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import aiofiles

from gmaextract.cancellation import CancellationToken
from gmaextract.errors import (
    EmptyTableError,
    ExtractCancelledError,
    GmaError,
    InvalidFormatError,
    TruncatedError,
)
from gmaextract.extractor.metadata import MetadataWriter
from gmaextract.extractor.streaming import (
    DEFAULT_BUFFER_SIZE,
    ProgressCallback,
    StreamingExtractor,
)
from gmaextract.parser.header import ArchiveMetadata, HeaderParser
from gmaextract.parser.reader import ArchiveReader
from gmaextract.parser.table import FileEntry, FileTableReader


class ExtractState(Enum):
    """展開処理の状態

    IDLE -> READING_HEADER -> READING_TABLE -> EXTRACTING -> WRITING_METADATA -> DONE
    の順に遷移し、途中のどの状態からでもCANCELLEDまたはFAILEDに遷移する。
    """

    IDLE = "idle"
    READING_HEADER = "reading_header"
    READING_TABLE = "reading_table"
    EXTRACTING = "extracting"
    WRITING_METADATA = "writing_metadata"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """終端状態か"""
        return self in (ExtractState.DONE, ExtractState.CANCELLED, ExtractState.FAILED)


class ExtractOutcome(Enum):
    """展開処理の結果種別"""

    SUCCESS = "success"
    INVALID_FORMAT = "invalid_format"
    EMPTY_TABLE = "empty_table"
    TRUNCATED = "truncated"
    CANCELLED = "cancelled"
    IO_FAILURE = "io_failure"


@dataclass(frozen=True)
class ExtractResult:
    """展開処理の実行結果

    Attributes:
        outcome: 結果種別
        output_dir: アドオンの展開先ディレクトリ（作成前に終了した場合はNone）
        metadata: 読み出したメタデータ（ヘッダー解析前に終了した場合はNone）
        files_extracted: 展開が完了したファイル数
        error_message: エラーメッセージ（成功時は空文字列）
        final_state: 終了時の状態
    """

    outcome: ExtractOutcome
    output_dir: Path | None = None
    metadata: ArchiveMetadata | None = None
    files_extracted: int = 0
    error_message: str = ""
    final_state: ExtractState = ExtractState.DONE

    @property
    def success(self) -> bool:
        """展開が成功したか"""
        return self.outcome is ExtractOutcome.SUCCESS


@dataclass(frozen=True)
class ArchiveInfo:
    """展開を行わずに読み出したアーカイブの内容

    Attributes:
        metadata: アドオンのメタデータ
        entries: ファイルテーブル
    """

    metadata: ArchiveMetadata
    entries: list[FileEntry]

    @property
    def total_size(self) -> int:
        """全エントリの合計バイト数"""
        return sum(entry.size for entry in self.entries)


_ERROR_OUTCOMES: list[tuple[type[Exception], ExtractOutcome]] = [
    (InvalidFormatError, ExtractOutcome.INVALID_FORMAT),
    (EmptyTableError, ExtractOutcome.EMPTY_TABLE),
    (TruncatedError, ExtractOutcome.TRUNCATED),
    (OSError, ExtractOutcome.IO_FAILURE),
]


class GmaExtractor:
    """GMA展開処理オーケストレーター

    アーカイブを開いてから閉じるまでを1回の操作として扱う。
    同じアーカイブや展開先に対する並行実行の調停は行わない。

    使用例:
        >>> extractor = GmaExtractor(Path("addon.gma"), Path("out"))
        >>> result = extractor.extract()
        >>> if result.success:
        ...     print(result.output_dir)
    """

    def __init__(
        self,
        archive_path: Path,
        output_root: Path,
        *,
        progress_callback: ProgressCallback | None = None,
        token: CancellationToken | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """オーケストレーターを初期化する

        Args:
            archive_path: GMAアーカイブのパス
            output_root: 展開先のルートディレクトリ
            progress_callback: 進捗通知用コールバック（オプション）
            token: キャンセル用トークン（Noneの場合は内部で作成）
            buffer_size: コピー時の読み出し単位
        """
        self._archive_path = archive_path
        self._output_root = output_root
        self._progress_callback = progress_callback
        self._token = token or CancellationToken()
        self._buffer_size = buffer_size
        self._state = ExtractState.IDLE

    @property
    def state(self) -> ExtractState:
        """現在の状態"""
        return self._state

    @property
    def token(self) -> CancellationToken:
        """キャンセル用トークン"""
        return self._token

    def cancel(self) -> None:
        """展開のキャンセルを要求する"""
        self._token.cancel()

    def extract(self) -> ExtractResult:
        """展開処理を同期的に実行する

        イベントループが動作していないスレッドから呼び出すこと。
        """
        return asyncio.run(self.extract_async())

    async def extract_async(self) -> ExtractResult:
        """展開処理を実行する

        Returns:
            展開結果。失敗やキャンセルも例外ではなく結果種別として返す。

        Raises:
            RuntimeError: 実行中のインスタンスで再度呼び出された場合
            Exception: 進捗コールバックが送出した例外（状態はFAILEDになる）
        """
        if self._state is not ExtractState.IDLE and not self._state.is_terminal:
            raise RuntimeError(f"展開処理はすでに実行中です (状態: {self._state.value})")

        self._state = ExtractState.IDLE
        metadata: ArchiveMetadata | None = None
        extractor: StreamingExtractor | None = None

        try:
            self._token.raise_if_cancelled()

            async with aiofiles.open(self._archive_path, "rb") as stream:
                reader = ArchiveReader(stream)

                self._state = ExtractState.READING_HEADER
                metadata = await HeaderParser(reader).parse()

                self._state = ExtractState.READING_TABLE
                entries = await FileTableReader(reader).read()

                self._state = ExtractState.EXTRACTING
                extractor = StreamingExtractor(
                    reader,
                    self._output_root,
                    self._token,
                    progress_callback=self._progress_callback,
                    buffer_size=self._buffer_size,
                )
                addon_dir = await extractor.extract(metadata, entries)

            self._state = ExtractState.WRITING_METADATA
            await MetadataWriter().write(addon_dir, metadata)

            self._state = ExtractState.DONE
            return ExtractResult(
                outcome=ExtractOutcome.SUCCESS,
                output_dir=addon_dir,
                metadata=metadata,
                files_extracted=extractor.files_extracted,
                final_state=self._state,
            )
        except ExtractCancelledError as e:
            self._state = ExtractState.CANCELLED
            return self._failure(ExtractOutcome.CANCELLED, e, metadata, extractor)
        except asyncio.CancelledError:
            self._state = ExtractState.CANCELLED
            raise
        except (GmaError, OSError) as e:
            self._state = ExtractState.FAILED
            return self._failure(self._outcome_for(e), e, metadata, extractor)
        except BaseException:
            # 進捗コールバックからの例外なども終端状態にしてから伝播する
            self._state = ExtractState.FAILED
            raise

    def _failure(
        self,
        outcome: ExtractOutcome,
        error: Exception,
        metadata: ArchiveMetadata | None,
        extractor: StreamingExtractor | None,
    ) -> ExtractResult:
        """失敗・キャンセル時の結果を組み立てる"""
        return ExtractResult(
            outcome=outcome,
            output_dir=extractor.addon_dir_for(metadata) if extractor and metadata else None,
            metadata=metadata,
            files_extracted=extractor.files_extracted if extractor else 0,
            error_message=str(error),
            final_state=self._state,
        )

    @staticmethod
    def _outcome_for(error: Exception) -> ExtractOutcome:
        for error_type, outcome in _ERROR_OUTCOMES:
            if isinstance(error, error_type):
                return outcome
        return ExtractOutcome.IO_FAILURE


async def inspect_archive(archive_path: Path) -> ArchiveInfo:
    """ヘッダーとファイルテーブルだけを読み出す

    Args:
        archive_path: GMAアーカイブのパス

    Returns:
        アーカイブの内容

    Raises:
        InvalidFormatError: シグネチャが一致しない場合
        EmptyTableError: エントリが1件も無い場合
        TruncatedError: ヘッダーやテーブルの途中でアーカイブが終わっている場合
        OSError: ファイルを開けない場合
    """
    async with aiofiles.open(archive_path, "rb") as stream:
        reader = ArchiveReader(stream)
        metadata = await HeaderParser(reader).parse()
        entries = await FileTableReader(reader).read()

    return ArchiveInfo(metadata=metadata, entries=entries)
