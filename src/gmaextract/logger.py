"""CLI向けのログ出力と展開進捗の表示

ExtractLoggerはVerboseLevelで画面出力を絞り込み、ログファイルには常に全レベルを書き出す。
ライブラリ側は標準のloggingで記録し、CLI実行中はforward_library_logs()でここに集約する。
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Protocol, TextIO

_PACKAGE_LOGGER = "gmaextract"


class VerboseLevel(IntEnum):
    """画面出力の詳細度

    QUIET: エラーのみ
    NORMAL: 進捗バーと展開結果
    VERBOSE: 展開したファイルを1件ずつ（-v）
    DEBUG: ライブラリ内部のログまで（-vv）
    """

    QUIET = -1
    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


class ProgressDisplay(Protocol):
    """アーカイブ1件分の展開進捗を表示するもの"""

    def start(self, archive_name: str, total: int) -> None:
        """最初のエントリが展開された時点で呼ばれる

        Args:
            archive_name: アーカイブのファイル名
            total: テーブル上のエントリ数
        """
        ...

    def update(self, current: int, message: str = "") -> None:
        """エントリが1件展開されるたびに呼ばれる"""
        ...

    def finish(self, success: bool, message: str = "") -> None:
        """展開の終了時に呼ばれる（失敗時のmessageは理由）"""
        ...


@dataclass
class LogConfig:
    """ExtractLoggerの出力設定

    Attributes:
        verbose_level: 画面出力の詳細度
        log_file: 全レベルを書き出すファイル（Noneなら書き出さない）
        use_color: 進捗表示で色を使うか
        use_emoji: サマリや進捗表示で絵文字を使うか
    """

    verbose_level: VerboseLevel = VerboseLevel.NORMAL
    log_file: Path | None = None
    use_color: bool = True
    use_emoji: bool = True


class ExtractLogger:
    """展開コマンドのログ出力

    コンテキストマネージャとして使うと終了時にログファイルを閉じる。

    使用例:
        >>> with ExtractLogger(LogConfig(verbose_level=VerboseLevel.VERBOSE)) as logger:
        ...     logger.verbose("展開: lua/autorun/init.lua [1/3]")
    """

    _ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

    def __init__(self, config: LogConfig) -> None:
        self._config = config
        self._log_file: TextIO | None = None
        if config.log_file:
            # __exit__で閉じる
            self._log_file = open(config.log_file, "w", encoding="utf-8")  # noqa: SIM115

    def __enter__(self) -> ExtractLogger:
        return self

    def __exit__(self, *args: object) -> None:
        if self._log_file:
            self._log_file.close()
            self._log_file = None

    @property
    def config(self) -> LogConfig:
        return self._config

    def _emit(
        self,
        label: str,
        message: str,
        threshold: VerboseLevel,
        prefix: str = "",
        stream: TextIO | None = None,
    ) -> None:
        """thresholdを満たせば画面に、満たさなくてもファイルには書き出す"""
        if self._config.verbose_level >= threshold:
            print(f"{prefix}{message}", file=stream or sys.stdout)
        if self._log_file:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self._log_file.write(f"[{timestamp}] {label}: {self._ANSI_ESCAPE.sub('', message)}\n")
            self._log_file.flush()

    def info(self, message: str) -> None:
        self._emit("INFO", message, VerboseLevel.NORMAL)

    def verbose(self, message: str) -> None:
        self._emit("VERBOSE", message, VerboseLevel.VERBOSE)

    def debug(self, message: str) -> None:
        self._emit("DEBUG", message, VerboseLevel.DEBUG)

    def warning(self, message: str) -> None:
        self._emit("WARNING", message, VerboseLevel.NORMAL, prefix="警告: ")

    def error(self, message: str) -> None:
        """QUIETでも標準エラー出力へ書き出す"""
        self._emit("ERROR", message, VerboseLevel.QUIET, prefix="エラー: ", stream=sys.stderr)

    def create_progress(self) -> ProgressDisplay:
        """詳細度に合った進捗表示を返す（QUIETでは何も表示しない）"""
        if self._config.verbose_level <= VerboseLevel.QUIET:
            return NullProgressDisplay()
        return ConsoleProgressDisplay(
            use_color=self._config.use_color,
            use_emoji=self._config.use_emoji,
        )

    def log_entry(self, path: str, files_processed: int, total_files: int) -> None:
        self.verbose(f"展開: {path} [{files_processed}/{total_files}]")

    def log_summary(self, statistics: dict[str, Any]) -> None:
        """展開結果をまとめて表示する

        Args:
            statistics: addon_name, output_dir, files_extracted のうち分かっているもの
        """
        mark = "✅" if self._config.use_emoji else "[OK]"
        self.info(f"{mark} Extraction complete!")
        for key, label in (
            ("addon_name", "Addon"),
            ("output_dir", "Output"),
            ("files_extracted", "Files"),
        ):
            if key in statistics:
                self.info(f"   {label}: {statistics[key]}")

    def forward_library_logs(self) -> logging.Handler:
        """gmaextractパッケージのloggingをこのロガーへ流す

        Returns:
            登録したハンドラ（終了時にremove_library_handler()へ渡す）
        """
        package_logger = logging.getLogger(_PACKAGE_LOGGER)
        handler = _ExtractLoggerHandler(self, previous_level=package_logger.level)
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG)
        return handler

    def remove_library_handler(self, handler: logging.Handler) -> None:
        """ハンドラを外し、登録前のログレベルに戻す"""
        package_logger = logging.getLogger(_PACKAGE_LOGGER)
        package_logger.removeHandler(handler)
        if isinstance(handler, _ExtractLoggerHandler):
            package_logger.setLevel(handler.previous_level)


class _ExtractLoggerHandler(logging.Handler):
    def __init__(self, target: ExtractLogger, previous_level: int) -> None:
        super().__init__()
        self._target = target
        self.previous_level = previous_level

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            self._target.error(message)
        elif record.levelno >= logging.WARNING:
            self._target.warning(message)
        else:
            self._target.debug(message)


class ConsoleProgressDisplay:
    """標準出力に1行の進捗バーを描画する"""

    BAR_WIDTH = 40

    def __init__(self, use_color: bool = True, use_emoji: bool = True) -> None:
        self._use_color = use_color
        self._use_emoji = use_emoji
        self._total = 0
        self._current = 0

    def _bar(self) -> str:
        filled = self.BAR_WIDTH * self._current // self._total if self._total > 0 else 0
        return "█" * filled + "░" * (self.BAR_WIDTH - filled)

    def start(self, archive_name: str, total: int) -> None:
        self._total = total
        self._current = 0
        icon = "\U0001f4e6 " if self._use_emoji else ""
        print(f"{icon}Extracting {archive_name}...")

    def update(self, current: int, message: str = "") -> None:
        self._current = current
        if self._total <= 0:
            return
        percent = current * 100 // self._total
        suffix = f" {message}" if message else ""
        print(f"\r   [{self._bar()}] {percent}%{suffix}", end="", flush=True)

    def finish(self, success: bool, message: str = "") -> None:
        if success:
            mark = "✓" if self._use_emoji else "done"
            print(f"\r   [{self._bar()}] 100% {mark}")
            return
        mark = "✗" if self._use_emoji else "failed"
        reason = f": {message}" if message else ""
        print(f"\r   [{self._bar()}] {mark}{reason}")


class NullProgressDisplay:
    """QUIET用の何も表示しない進捗表示"""

    def start(self, archive_name: str, total: int) -> None:
        pass

    def update(self, current: int, message: str = "") -> None:
        pass

    def finish(self, success: bool, message: str = "") -> None:
        pass
