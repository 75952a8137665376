"""共通型定義"""

from enum import IntEnum


class ExitCode(IntEnum):
    """CLIの終了コード"""

    SUCCESS = 0
    ERROR = 1
    INVALID_INPUT = 2
    EMPTY_ARCHIVE = 3
    TRUNCATED = 4
    CANCELLED = 130
