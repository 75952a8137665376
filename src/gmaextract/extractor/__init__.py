"""Extractor module for gmaextract.

ファイルテーブルの順にファイル本体を書き出し、addon.txt を生成する。
"""

from gmaextract.extractor.metadata import DESCRIPTOR_FILENAME, MetadataWriter, render_descriptor
from gmaextract.extractor.streaming import (
    DEFAULT_BUFFER_SIZE,
    ExtractProgress,
    ProgressCallback,
    StreamingExtractor,
    sanitize_addon_name,
)

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "DESCRIPTOR_FILENAME",
    "ExtractProgress",
    "MetadataWriter",
    "ProgressCallback",
    "StreamingExtractor",
    "render_descriptor",
    "sanitize_addon_name",
]
