"""CLI entry point for gmaextract."""

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gmaextract import __version__
from gmaextract.cancellation import CancellationToken
from gmaextract.config import ConfigError, GmaExtractConfig, get_default_config, load_config
from gmaextract.engine import ExtractOutcome, ExtractResult, GmaExtractor, inspect_archive
from gmaextract.errors import GmaError
from gmaextract.extractor.streaming import ExtractProgress
from gmaextract.logger import ExtractLogger, LogConfig, ProgressDisplay, VerboseLevel
from gmaextract.parser.detector import FileType, detect_file_type, extension_for
from gmaextract.types import ExitCode

app = typer.Typer(help="Garry's ModのGMAアドオンアーカイブを展開するCLIツール")
console = Console()

_OUTCOME_EXIT_CODES: dict[ExtractOutcome, ExitCode] = {
    ExtractOutcome.SUCCESS: ExitCode.SUCCESS,
    ExtractOutcome.INVALID_FORMAT: ExitCode.INVALID_INPUT,
    ExtractOutcome.EMPTY_TABLE: ExitCode.EMPTY_ARCHIVE,
    ExtractOutcome.TRUNCATED: ExitCode.TRUNCATED,
    ExtractOutcome.CANCELLED: ExitCode.CANCELLED,
    ExtractOutcome.IO_FAILURE: ExitCode.ERROR,
}

_OUTCOME_MESSAGES: dict[ExtractOutcome, str] = {
    ExtractOutcome.INVALID_FORMAT: "GMAアーカイブではありません",
    ExtractOutcome.EMPTY_TABLE: "アーカイブにファイルが含まれていません",
    ExtractOutcome.TRUNCATED: "アーカイブが途中で切れています",
    ExtractOutcome.CANCELLED: "展開はユーザーによってキャンセルされました",
    ExtractOutcome.IO_FAILURE: "ファイルの書き込みに失敗しました",
}


def _format_size(size_bytes: int) -> str:
    """バイト数を人間が読みやすい形式に変換する"""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def _load_settings(config_path: Path | None) -> GmaExtractConfig:
    """設定ファイルを読み込む（未指定の場合はデフォルト設定）"""
    if config_path is None:
        return get_default_config()
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT) from e


def _fix_extension(path: Path, file_type: FileType, logger: ExtractLogger) -> Path | None:
    """検出した種別に合わせて拡張子を付け足す

    Returns:
        変更後のパス。変更先に同名のファイルがある場合はNone（既存ファイルは上書きしない）
    """
    extension = extension_for(file_type)
    if extension is None or path.suffix.lower() == extension:
        return path

    renamed = path.with_name(path.name + extension)
    if renamed.exists():
        logger.error(f"拡張子を修正できません。{renamed.name} が既に存在します")
        return None
    path.rename(renamed)
    logger.info(f"拡張子を修正しました: {path.name} -> {renamed.name}")
    return renamed


def _run_extraction(extractor: GmaExtractor, token: CancellationToken) -> ExtractResult:
    """Ctrl+Cをキャンセル要求として扱いながら展開を実行する"""
    previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        return extractor.extract()
    finally:
        signal.signal(signal.SIGINT, previous)


def _extract_archive(
    archive: Path, output_root: Path, settings: GmaExtractConfig, logger: ExtractLogger
) -> ExitCode:
    """GMAアーカイブ1件を展開する"""
    display: ProgressDisplay = logger.create_progress()
    started = False

    def progress_callback(progress: ExtractProgress) -> None:
        nonlocal started
        if not started:
            display.start(archive.name, progress.total_files)
            started = True
        display.update(progress.files_processed, progress.current_file)
        logger.log_entry(progress.current_file, progress.files_processed, progress.total_files)

    token = CancellationToken()
    extractor = GmaExtractor(
        archive,
        output_root,
        progress_callback=progress_callback,
        token=token,
        buffer_size=settings.extract.buffer_size,
    )
    result = _run_extraction(extractor, token)

    if started:
        display.finish(result.success, _OUTCOME_MESSAGES.get(result.outcome, ""))

    if result.success:
        logger.log_summary(
            {
                "addon_name": result.metadata.name if result.metadata else "",
                "output_dir": result.output_dir,
                "files_extracted": result.files_extracted,
            }
        )
    elif result.outcome is ExtractOutcome.CANCELLED:
        logger.warning(f"{_OUTCOME_MESSAGES[result.outcome]} ({result.files_extracted}件展開済み)")
    else:
        logger.error(f"{archive}: {_OUTCOME_MESSAGES[result.outcome]}")
        logger.debug(result.error_message)

    return _OUTCOME_EXIT_CODES[result.outcome]


@app.command()
def extract(
    archives: Annotated[list[Path], typer.Argument(help="展開するファイル（複数指定可）")],
    output: Annotated[Path | None, typer.Option("-o", "--output", help="展開先ディレクトリ")] = None,
    config_path: Annotated[
        Path | None, typer.Option("-c", "--config", help="設定ファイル（YAML）")
    ] = None,
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="詳細ログ出力")] = 0,
    quiet: Annotated[bool, typer.Option("-q", "--quiet", help="エラーのみ出力")] = False,
    log_file: Annotated[Path | None, typer.Option(help="ログファイル出力先")] = None,
    fix_extension: Annotated[
        bool, typer.Option("--fix-extension", help="検出した形式に合わせて拡張子を付ける")
    ] = False,
) -> None:
    """GMAアーカイブを展開する"""
    settings = _load_settings(config_path)

    if quiet:
        level = VerboseLevel.QUIET
    elif verbose > 0:
        level = VerboseLevel(min(verbose, VerboseLevel.DEBUG))
    else:
        level = settings.logging.verbose_level

    log_config = LogConfig(
        verbose_level=level,
        log_file=log_file or settings.logging.log_file,
        use_color=settings.logging.use_color,
        use_emoji=settings.logging.use_emoji,
    )
    exit_code = ExitCode.SUCCESS

    with ExtractLogger(log_config) as logger:
        handler = logger.forward_library_logs()
        try:
            for archive in archives:
                code = _handle_file(archive, output, settings, logger, fix_extension)
                if code is ExitCode.CANCELLED:
                    exit_code = code
                    break
                if exit_code is ExitCode.SUCCESS:
                    exit_code = code
        finally:
            logger.remove_library_handler(handler)

    raise typer.Exit(exit_code)


def _handle_file(
    archive: Path,
    output: Path | None,
    settings: GmaExtractConfig,
    logger: ExtractLogger,
    fix_extension: bool,
) -> ExitCode:
    """ファイル1件の形式を判定し、対応する処理を行う"""
    if not archive.is_file():
        logger.error(f"ファイルが見つかりません: {archive}")
        return ExitCode.INVALID_INPUT

    try:
        file_type = detect_file_type(archive)
        logger.verbose(f"{archive.name}: {file_type.value}")

        if file_type is FileType.UNKNOWN:
            logger.error(f"{archive.name}: 不明なファイル形式です")
            return ExitCode.INVALID_INPUT

        if fix_extension or settings.extract.fix_extension:
            fixed = _fix_extension(archive, file_type, logger)
            if fixed is None:
                return ExitCode.INVALID_INPUT
            archive = fixed
    except OSError as e:
        logger.error(f"{archive}: {e}")
        return ExitCode.ERROR

    match file_type:
        case FileType.GMAD:
            output_root = output or settings.extract.output_dir or archive.parent
            return _extract_archive(archive, output_root, settings, logger)
        case FileType.LZMA:
            logger.warning(
                f"{archive.name} はLZMA圧縮されています。7-Zipで展開してから再度指定してください"
            )
            return ExitCode.INVALID_INPUT
        case _:
            logger.info(
                f"{archive.name} は{file_type.value.upper()}ファイルです。"
                "garrysmod/ 以下の適切なディレクトリに配置してください"
            )
            return ExitCode.SUCCESS


@app.command()
def info(
    archive: Annotated[Path, typer.Argument(help="解析するGMAアーカイブ")],
) -> None:
    """アーカイブの内容を展開せずに表示する"""
    if not archive.is_file():
        console.print(f"[red]Error: ファイルが見つかりません: {escape(str(archive))}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT)

    try:
        archive_info = asyncio.run(inspect_archive(archive))
    except GmaError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT) from e
    except OSError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(ExitCode.ERROR) from e

    # アーカイブ由来の文字列はrichのマークアップとして解釈させない
    metadata = archive_info.metadata
    summary = Table(title="Addon Info", show_header=False)
    summary.add_column("Property", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Name", Text(metadata.name))
    summary.add_row("Author", Text(metadata.author))
    summary.add_row("Description", Text(metadata.description))
    summary.add_row("Files", f"{len(archive_info.entries)} files")
    summary.add_row("Total Size", _format_size(archive_info.total_size))
    console.print(Panel(summary, border_style="blue"))

    files = Table(title="Files")
    files.add_column("#", justify="right")
    files.add_column("Path", style="cyan")
    files.add_column("Size", justify="right")
    for number, entry in enumerate(archive_info.entries, start=1):
        path = Text(entry.path, style="yellow") if entry.is_unsafe else Text(entry.path)
        files.add_row(str(number), path, _format_size(entry.size))
    console.print(files)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def detect(
    paths: Annotated[list[Path], typer.Argument(help="判定するファイル（複数指定可）")],
) -> None:
    """ファイル形式を判定する"""
    table = Table(title="ファイル形式")
    table.add_column("ファイル", style="cyan")
    table.add_column("形式", style="green")

    exit_code = ExitCode.SUCCESS
    for path in paths:
        if not path.is_file():
            table.add_row(Text(str(path)), "[red]見つかりません[/red]")
            exit_code = ExitCode.INVALID_INPUT
            continue
        try:
            file_type = detect_file_type(path)
        except OSError:
            table.add_row(Text(str(path)), "[red]読み取れません[/red]")
            exit_code = ExitCode.ERROR
            continue
        table.add_row(Text(str(path)), file_type.value)

    console.print(table)
    raise typer.Exit(exit_code)


def version_callback(value: bool) -> None:
    """バージョン表示コールバック"""
    if value:
        typer.echo(f"gmaextract {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="バージョンを表示する",
        ),
    ] = False,
) -> None:
    """gmaextract CLI - GMAアドオンアーカイブを展開"""
    pass
