"""addon.txt 出力モジュール"""

from __future__ import annotations

from pathlib import Path

import aiofiles

from gmaextract.parser.header import ArchiveMetadata

DESCRIPTOR_FILENAME = "addon.txt"


def render_descriptor(metadata: ArchiveMetadata) -> str:
    """addon.txt の内容を生成する

    値はエスケープせずにそのまま埋め込む（'"'を含む値では構造が壊れる）。

    Args:
        metadata: アドオンのメタデータ

    Returns:
        CRLF改行の記述子テキスト（末尾改行なし）
    """
    return (
        '"AddonInfo"\r\n{\r\n'
        f'\t"name" "{metadata.name}"\r\n'
        f'\t"author_name" "{metadata.author}"\r\n'
        f'\t"info" "{metadata.description}"\r\n'
        "}"
    )


class MetadataWriter:
    """addon.txt を書き出すクラス"""

    async def write(self, addon_dir: Path, metadata: ArchiveMetadata) -> Path:
        """アドオンディレクトリに addon.txt を書き出す

        Args:
            addon_dir: アドオンの展開先ディレクトリ
            metadata: アドオンのメタデータ

        Returns:
            書き出したファイルのパス

        Raises:
            OSError: 書き込みに失敗した場合
        """
        descriptor_path = addon_dir / DESCRIPTOR_FILENAME

        async with aiofiles.open(descriptor_path, "w", encoding="utf-8", newline="") as f:
            await f.write(render_descriptor(metadata))
            await f.flush()

        return descriptor_path
