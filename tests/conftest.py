"""テスト共通フィクスチャ

GMAアーカイブをメモリ上で組み立てるヘルパーと、
非同期ストリームの代替となるAsyncBytesStreamを提供する。
"""

from __future__ import annotations

import io
import struct
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest


class AsyncBytesStream:
    """バイト列を非同期に読み出すストリーム

    要求されたサイズをread_sizesに記録する。
    """

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)
        self.read_sizes: list[int] = []

    async def read(self, size: int = -1) -> bytes:
        self.read_sizes.append(size)
        return self._stream.read(size)


def _cstring(value: str) -> bytes:
    return value.encode("cp1252") + b"\x00"


def build_gma(
    name: str = "Test Addon",
    description: str = "Test description",
    author: str = "Tester",
    entries: Sequence[tuple[str, bytes]] = (("a.txt", b"hello"),),
    *,
    signature: bytes = b"GMAD",
    file_numbers: Sequence[int] | None = None,
    declared_sizes: dict[str, int] | None = None,
) -> bytes:
    """GMAアーカイブのバイト列を組み立てる

    Args:
        name: アドオン名
        description: アドオンの説明
        author: 作者名
        entries: (パス, 内容) の一覧
        signature: 先頭4バイト
        file_numbers: エントリごとのファイル番号（省略時は1からの連番）
        declared_sizes: テーブルに書くサイズを実データと変える場合のパスとサイズ
    """
    declared_sizes = declared_sizes or {}
    numbers = list(file_numbers) if file_numbers is not None else range(1, len(entries) + 1)

    # version(1) + steamid(8) + timestamp(8) + required content(1)
    reserved = struct.pack("<BQQ", 3, 76561197960287930, 1700000000) + b"\x00"
    header = (
        signature
        + reserved
        + _cstring(name)
        + _cstring(description)
        + _cstring(author)
        + struct.pack("<i", 1)
    )

    table = b""
    for number, (path, data) in zip(numbers, entries, strict=True):
        size = declared_sizes.get(path, len(data))
        table += struct.pack("<I", number) + _cstring(path) + struct.pack("<I", size)
        table += struct.pack("<II", 0, 0)
    table += struct.pack("<I", 0)

    content = b"".join(data for _, data in entries)
    return header + table + content


@pytest.fixture
def gma_builder() -> Callable[..., bytes]:
    """GMAアーカイブのバイト列を組み立てる関数"""
    return build_gma


@pytest.fixture
def write_gma(tmp_path: Path) -> Callable[..., Path]:
    """GMAアーカイブをtmp_pathに書き出す関数"""

    def _write(filename: str = "addon.gma", **kwargs: object) -> Path:
        path = tmp_path / filename
        path.write_bytes(build_gma(**kwargs))  # type: ignore[arg-type]
        return path

    return _write


@pytest.fixture
def async_stream() -> Callable[[bytes], AsyncBytesStream]:
    """バイト列からAsyncBytesStreamを作る関数"""
    return AsyncBytesStream
