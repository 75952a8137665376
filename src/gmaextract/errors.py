"""GMA展開処理の例外定義

展開エンジンの各コンポーネントが送出する例外をまとめる。
ファイルシステムのエラーはOSErrorのまま伝播させ、
GmaExtractorが結果コードへ変換する。
"""


class GmaError(Exception):
    """GMA展開処理の基底例外"""

    pass


class InvalidFormatError(GmaError):
    """シグネチャが一致しない、または構造が不正なアーカイブ"""

    pass


class EmptyTableError(GmaError):
    """ファイルテーブルにエントリが1件も無いアーカイブ"""

    pass


class TruncatedError(GmaError):
    """宣言されたサイズに対してアーカイブのデータが不足している"""

    pass


class ExtractCancelledError(GmaError):
    """呼び出し側によって展開がキャンセルされた"""

    pass
