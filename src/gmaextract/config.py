"""Configuration module for gmaextract."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gmaextract.extractor.streaming import DEFAULT_BUFFER_SIZE
from gmaextract.logger import VerboseLevel


class ConfigError(Exception):
    """設定ファイル読み込みエラー"""

    pass


@dataclass(frozen=True)
class ExtractConfig:
    """展開設定"""

    buffer_size: int = DEFAULT_BUFFER_SIZE
    output_dir: Path | None = None
    fix_extension: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """ログ設定"""

    verbose_level: VerboseLevel = VerboseLevel.NORMAL
    log_file: Path | None = None
    use_color: bool = True
    use_emoji: bool = True


@dataclass(frozen=True)
class GmaExtractConfig:
    """ルート設定"""

    extract: ExtractConfig = field(default_factory=ExtractConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path) -> GmaExtractConfig:
    """設定ファイルを読み込む

    Args:
        path: 設定ファイルパス

    Returns:
        GmaExtractConfig: 読み込んだ設定（デフォルトとマージ済み）

    Raises:
        ConfigError: ファイル読み込みまたはパースエラー
    """
    if not path.exists():
        raise ConfigError(f"設定ファイルが見つかりません: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML解析エラー: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("設定ファイルはYAMLのマッピング形式である必要があります")

    default = get_default_config()

    return GmaExtractConfig(
        extract=_merge_extract_config(data.get("extract", {}), default.extract),
        logging=_merge_logging_config(data.get("logging", {}), default.logging),
    )


def get_default_config() -> GmaExtractConfig:
    """デフォルト設定を取得する"""
    return GmaExtractConfig()


def _optional_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def _merge_extract_config(data: dict[str, Any], default: ExtractConfig) -> ExtractConfig:
    """展開設定をマージする"""
    if not isinstance(data, dict):
        return default

    buffer_size = data.get("buffer_size", default.buffer_size)
    if not isinstance(buffer_size, int) or isinstance(buffer_size, bool) or buffer_size <= 0:
        raise ConfigError(f"buffer_size は正の整数である必要があります: {buffer_size!r}")

    return ExtractConfig(
        buffer_size=buffer_size,
        output_dir=_optional_path(data.get("output_dir", default.output_dir)),
        fix_extension=bool(data.get("fix_extension", default.fix_extension)),
    )


def _merge_logging_config(data: dict[str, Any], default: LoggingConfig) -> LoggingConfig:
    """ログ設定をマージする"""
    if not isinstance(data, dict):
        return default

    level = data.get("verbose_level", default.verbose_level)
    if isinstance(level, str):
        try:
            level = VerboseLevel[level.upper()]
        except KeyError as e:
            raise ConfigError(f"不明な verbose_level です: {level}") from e
    else:
        try:
            level = VerboseLevel(level)
        except ValueError as e:
            raise ConfigError(f"不明な verbose_level です: {level}") from e

    return LoggingConfig(
        verbose_level=level,
        log_file=_optional_path(data.get("log_file", default.log_file)),
        use_color=bool(data.get("use_color", default.use_color)),
        use_emoji=bool(data.get("use_emoji", default.use_emoji)),
    )
