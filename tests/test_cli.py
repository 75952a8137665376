"""CLIエントリポイントのテスト"""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from gmaextract.cli import app
from gmaextract.engine import ExtractOutcome, ExtractResult, ExtractState
from gmaextract.types import ExitCode

runner = CliRunner()


class TestMainCommand:
    """メインコマンドのテスト"""

    @pytest.mark.parametrize(
        "args,expected_in_output",
        [
            pytest.param(["--help"], "GMAアドオン", id="正常系: ヘルプ表示"),
            pytest.param(["--version"], "0.1.0", id="正常系: バージョン表示"),
        ],
    )
    def test_main_options(self, args: list[str], expected_in_output: str) -> None:
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert expected_in_output in result.stdout


class TestExtractCommand:
    """extractコマンドのテスト"""

    def test_extract_success(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """正常系: アーカイブを指定ディレクトリに展開する"""
        archive = write_gma(name="CLI Addon", entries=[("a.txt", b"hello"), ("b/c.txt", b"c")])
        output = tmp_path / "out"

        result = runner.invoke(app, ["extract", str(archive), "-o", str(output)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Extraction complete" in result.stdout
        assert (output / "CLI Addon" / "a.txt").read_bytes() == b"hello"
        assert (output / "CLI Addon" / "b" / "c.txt").read_bytes() == b"c"
        assert (output / "CLI Addon" / "addon.txt").exists()

    def test_extract_defaults_to_archive_directory(
        self, tmp_path: Path, write_gma: Callable[..., Path]
    ) -> None:
        """正常系: 出力先を省略するとアーカイブと同じディレクトリに展開する"""
        archive = write_gma(name="Beside")

        result = runner.invoke(app, ["extract", str(archive)])

        assert result.exit_code == ExitCode.SUCCESS
        assert (tmp_path / "Beside" / "a.txt").exists()

    def test_extract_verbose_lists_files(
        self, tmp_path: Path, write_gma: Callable[..., Path]
    ) -> None:
        """正常系: -vで展開したファイルが表示される"""
        archive = write_gma(entries=[("lua/autorun/x.lua", b"print(1)")])

        result = runner.invoke(app, ["extract", str(archive), "-o", str(tmp_path / "o"), "-v"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "lua/autorun/x.lua" in result.stdout

    def test_extract_uses_config_output_dir(
        self, tmp_path: Path, write_gma: Callable[..., Path]
    ) -> None:
        """正常系: 設定ファイルの出力先が使われる"""
        archive = write_gma(name="Configured")
        config_file = tmp_path / "gmaextract.yml"
        config_file.write_text(
            f"extract:\n  output_dir: {tmp_path / 'from_config'}\n  buffer_size: 2\n",
            encoding="utf-8",
        )

        result = runner.invoke(app, ["extract", str(archive), "-c", str(config_file)])

        assert result.exit_code == ExitCode.SUCCESS
        assert (tmp_path / "from_config" / "Configured" / "a.txt").read_bytes() == b"hello"

    def test_extract_invalid_config(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """異常系: 設定ファイルが不正な場合はエラー終了"""
        archive = write_gma()
        config_file = tmp_path / "broken.yml"
        config_file.write_text("- not a mapping\n", encoding="utf-8")

        result = runner.invoke(app, ["extract", str(archive), "-c", str(config_file)])

        assert result.exit_code == ExitCode.INVALID_INPUT

    def test_extract_writes_log_file(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """正常系: --log-fileにログが書き出される"""
        archive = write_gma()
        log_file = tmp_path / "extract.log"

        result = runner.invoke(
            app,
            ["extract", str(archive), "-o", str(tmp_path / "o"), "--log-file", str(log_file)],
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert "Extraction complete" in log_file.read_text(encoding="utf-8")

    @pytest.mark.parametrize(
        "kwargs, expected_code",
        [
            pytest.param({"signature": b"GMAX"}, ExitCode.INVALID_INPUT, id="異常系: シグネチャ不一致"),
            pytest.param({"entries": []}, ExitCode.EMPTY_ARCHIVE, id="異常系: 空のアーカイブ"),
            pytest.param(
                {"entries": [("a.txt", b"abc")], "declared_sizes": {"a.txt": 50}},
                ExitCode.TRUNCATED,
                id="異常系: 途切れたアーカイブ",
            ),
        ],
    )
    def test_extract_failure_exit_codes(
        self,
        tmp_path: Path,
        write_gma: Callable[..., Path],
        kwargs: dict[str, object],
        expected_code: ExitCode,
    ) -> None:
        """展開結果に応じた終了コードを返す"""
        archive = write_gma(**kwargs)

        result = runner.invoke(app, ["extract", str(archive), "-o", str(tmp_path / "out")])

        assert result.exit_code == expected_code

    def test_extract_missing_file(self, tmp_path: Path) -> None:
        """異常系: 存在しないファイルはエラー終了"""
        result = runner.invoke(app, ["extract", str(tmp_path / "missing.gma")])
        assert result.exit_code == ExitCode.INVALID_INPUT

    @pytest.mark.parametrize(
        "content, expected_code",
        [
            pytest.param(b"PK\x03\x04zip", ExitCode.INVALID_INPUT, id="異常系: 不明な形式"),
            pytest.param(b"\x5d\x00\x00\x80", ExitCode.INVALID_INPUT, id="異常系: LZMA圧縮"),
            pytest.param(b"DUPE data", ExitCode.SUCCESS, id="正常系: 展開不要の形式"),
        ],
    )
    def test_extract_other_file_types(
        self, tmp_path: Path, content: bytes, expected_code: ExitCode
    ) -> None:
        """GMA以外の形式は展開せずに報告する"""
        target = tmp_path / "target.bin"
        target.write_bytes(content)

        result = runner.invoke(app, ["extract", str(target), "-o", str(tmp_path / "out")])

        assert result.exit_code == expected_code
        assert not (tmp_path / "out").exists()

    def test_extract_fix_extension(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """正常系: --fix-extensionで拡張子を付けてから展開する"""
        archive = write_gma(filename="download", name="Renamed")

        result = runner.invoke(
            app, ["extract", str(archive), "-o", str(tmp_path / "out"), "--fix-extension"]
        )

        assert result.exit_code == ExitCode.SUCCESS
        assert not archive.exists()
        assert (tmp_path / "download.gma").exists()
        assert (tmp_path / "out" / "Renamed" / "a.txt").exists()

    def test_extract_fix_extension_keeps_existing_file(
        self, tmp_path: Path, write_gma: Callable[..., Path]
    ) -> None:
        """異常系: 変更先の名前が既に存在する場合は上書きせずにエラー終了"""
        archive = write_gma(filename="addon")
        existing = tmp_path / "addon.gma"
        existing.write_bytes(b"precious")

        result = runner.invoke(
            app, ["extract", str(archive), "-o", str(tmp_path / "out"), "--fix-extension"]
        )

        assert result.exit_code == ExitCode.INVALID_INPUT
        assert existing.read_bytes() == b"precious"
        assert archive.exists()
        assert not (tmp_path / "out").exists()

    def test_extract_unreadable_file(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """異常系: ファイルを読み取れない場合はERRORで終了する"""
        archive = write_gma()

        with patch("gmaextract.cli.detect_file_type", side_effect=PermissionError("denied")):
            result = runner.invoke(app, ["extract", str(archive), "-o", str(tmp_path / "out")])

        assert result.exit_code == ExitCode.ERROR
        assert not isinstance(result.exception, PermissionError)

    def test_extract_cancelled(self, tmp_path: Path, write_gma: Callable[..., Path]) -> None:
        """キャンセルされた場合は以降のファイルを処理しない"""
        first = write_gma(filename="first.gma", name="First")
        second = write_gma(filename="second.gma", name="Second")
        cancelled = ExtractResult(
            outcome=ExtractOutcome.CANCELLED,
            files_extracted=0,
            final_state=ExtractState.CANCELLED,
        )

        with patch("gmaextract.cli.GmaExtractor") as mock_extractor_cls:
            mock_extractor_cls.return_value.extract.return_value = cancelled
            result = runner.invoke(
                app, ["extract", str(first), str(second), "-o", str(tmp_path / "out")]
            )

        assert result.exit_code == ExitCode.CANCELLED
        assert mock_extractor_cls.call_count == 1


class TestInfoCommand:
    """infoコマンドのテスト"""

    def test_info_shows_metadata_and_files(
        self, tmp_path: Path, write_gma: Callable[..., Path]
    ) -> None:
        """正常系: メタデータとファイル一覧を表示し、展開はしない"""
        archive = write_gma(
            name="InfoAddon",
            author="Garry",
            entries=[("a.txt", b"hello"), ("lua/b.lua", b"x" * 2048)],
        )

        result = runner.invoke(app, ["info", str(archive)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "InfoAddon" in result.stdout
        assert "Garry" in result.stdout
        assert "a.txt" in result.stdout
        assert "lua/b.lua" in result.stdout
        assert "2.0 KB" in result.stdout
        assert not (tmp_path / "InfoAddon").exists()

    def test_info_invalid_archive(self, write_gma: Callable[..., Path]) -> None:
        """異常系: 不正なアーカイブはエラー終了"""
        result = runner.invoke(app, ["info", str(write_gma(signature=b"NOPE"))])
        assert result.exit_code == ExitCode.INVALID_INPUT

    def test_info_shows_bracketed_strings_literally(
        self, write_gma: Callable[..., Path]
    ) -> None:
        """正常系: 角括弧を含む名前やパスもそのまま表示する"""
        archive = write_gma(
            name="x[/]",
            author="[bold]me",
            entries=[("a[/b]", b"1"), ("../[red]x", b"2")],
        )

        result = runner.invoke(app, ["info", str(archive)])

        assert result.exit_code == ExitCode.SUCCESS
        assert "x[/]" in result.stdout
        assert "[bold]me" in result.stdout
        assert "a[/b]" in result.stdout
        assert "../[red]x" in result.stdout

    def test_info_unreadable_file(self, write_gma: Callable[..., Path]) -> None:
        """異常系: 読み取り時のOSErrorはERRORで終了する"""
        archive = write_gma()

        with patch(
            "gmaextract.cli.inspect_archive",
            new=AsyncMock(side_effect=PermissionError("denied")),
        ):
            result = runner.invoke(app, ["info", str(archive)])

        assert result.exit_code == ExitCode.ERROR
        assert "denied" in result.stdout

    def test_info_missing_file(self, tmp_path: Path) -> None:
        """異常系: 存在しないファイルはエラー終了"""
        result = runner.invoke(app, ["info", str(tmp_path / "missing.gma")])
        assert result.exit_code == ExitCode.INVALID_INPUT


class TestDetectCommand:
    """detectコマンドのテスト"""

    def test_detect_file_types(
        self, tmp_path: Path, write_gma: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """正常系: 各ファイルの形式を表示する"""
        write_gma()
        (tmp_path / "compressed").write_bytes(b"\x5d\x00\x00\x80")
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["detect", "addon.gma", "compressed"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "gmad" in result.stdout
        assert "lzma" in result.stdout

    def test_detect_missing_file(self, tmp_path: Path) -> None:
        """異常系: 存在しないファイルがあればエラー終了"""
        result = runner.invoke(app, ["detect", str(tmp_path / "missing")])
        assert result.exit_code == ExitCode.INVALID_INPUT

    def test_detect_unreadable_file(
        self, write_gma: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """異常系: 読み取れないファイルがあればERRORで終了する"""
        archive = write_gma()
        monkeypatch.chdir(archive.parent)

        with patch("gmaextract.cli.detect_file_type", side_effect=PermissionError("denied")):
            result = runner.invoke(app, ["detect", archive.name])

        assert result.exit_code == ExitCode.ERROR
        assert "読み取れません" in result.stdout
