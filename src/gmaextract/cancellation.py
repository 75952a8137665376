"""展開処理のキャンセル制御

CancellationTokenは展開処理の各中断ポイント（エントリ間およびコピーループ内）
に明示的に渡され、呼び出し側からの協調的なキャンセルを可能にする。
"""

from __future__ import annotations

import threading

from gmaextract.errors import ExtractCancelledError


class CancellationToken:
    """協調的キャンセルのためのトークン

    内部でthreading.Eventを使用するため、シグナルハンドラや別スレッドから
    cancel()を呼び出しても安全に扱える。

    使用例:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.is_cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        """キャンセルが要求されているか"""
        return self._event.is_set()

    def cancel(self) -> None:
        """キャンセルを要求する"""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """キャンセルが要求されていれば例外を送出する

        Raises:
            ExtractCancelledError: キャンセルが要求されている場合
        """
        if self._event.is_set():
            raise ExtractCancelledError("展開はユーザーによってキャンセルされました")
