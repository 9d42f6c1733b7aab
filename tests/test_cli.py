import io
import platform
import shutil
import subprocess
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from typing import List
from unittest import mock

from tinybfc import Compiler, CompilerIOError, MemoryLayout, ToolchainError
from tinybfc.cli import main as cli_main
from tinybfc.toolchain import Stage, build, replace_extension

HELLO_WORLD = (
    "+++++ +++++[>+++++++>++++++++++>+++>+<<<<-]>++.>+.+++++++..+++.>++."
    "<<+++++++++++++++.>.+++.------.--------.>+.>."
)

HAVE_TOOLCHAIN = (
    platform.system() == "Linux"
    and platform.machine() in ("x86_64", "AMD64", "i386", "i686")
    and shutil.which("as") is not None
    and shutil.which("ld") is not None
)


def _fake_tool(calls: List[List[str]], returncode: int = 0):
    def run(command, **kwargs):
        calls.append(list(command))
        if returncode == 0:
            Path(command[2]).write_bytes(b"\x7fELF")
        return subprocess.CompletedProcess(command, returncode, stdout="", stderr="boom" if returncode else "")

    return run


class ReplaceExtensionTests(unittest.TestCase):
    def test_replaces_last_extension(self) -> None:
        self.assertEqual(replace_extension("prog.bf", "s"), Path("prog.s"))
        self.assertEqual(replace_extension("dir/prog.b.bf", "o"), Path("dir/prog.b.o"))

    def test_appends_when_missing(self) -> None:
        self.assertEqual(replace_extension("prog", "s"), Path("prog.s"))


class BuildTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.source = self.tmp_path / "prog.bf"
        self.source.write_text("+[-].", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_compile_stage_writes_listing(self) -> None:
        result = build(self.source, Stage.COMPILE, layout=MemoryLayout(128))
        self.assertEqual(result, self.tmp_path / "prog.s")
        expected = Compiler(MemoryLayout(128)).compile("+[-].")
        self.assertEqual(result.read_text(encoding="utf-8"), expected)

    def test_compile_stage_honours_output(self) -> None:
        target = self.tmp_path / "custom.asm"
        self.assertEqual(build(self.source, Stage.COMPILE, output=target), target)
        self.assertTrue(target.exists())
        self.assertFalse((self.tmp_path / "prog.s").exists())

    def test_unwritable_listing_raises_io_error(self) -> None:
        target = self.tmp_path / "missing" / "prog.s"
        with self.assertRaises(CompilerIOError) as ctx:
            build(self.source, Stage.COMPILE, output=target)
        self.assertEqual(ctx.exception.path, str(target))

    def test_assemble_stage_removes_listing(self) -> None:
        calls: List[List[str]] = []
        with mock.patch("tinybfc.toolchain.subprocess.run", side_effect=_fake_tool(calls)):
            result = build(self.source, Stage.ASSEMBLE)
        self.assertEqual(result, self.tmp_path / "prog.o")
        self.assertEqual(calls, [["as", "-o", str(self.tmp_path / "prog.o"), str(self.tmp_path / "prog.s")]])
        self.assertFalse((self.tmp_path / "prog.s").exists())

    def test_link_stage_removes_object(self) -> None:
        calls: List[List[str]] = []
        binary = self.tmp_path / "prog"
        with mock.patch("tinybfc.toolchain.subprocess.run", side_effect=_fake_tool(calls)):
            result = build(self.source, Stage.LINK, output=binary)
        self.assertEqual(result, binary)
        self.assertEqual([call[0] for call in calls], ["as", "ld"])
        self.assertEqual(calls[1], ["ld", "-o", str(binary), str(self.tmp_path / "prog.o")])
        self.assertFalse((self.tmp_path / "prog.o").exists())

    def test_tool_failure_raises(self) -> None:
        calls: List[List[str]] = []
        with mock.patch("tinybfc.toolchain.subprocess.run", side_effect=_fake_tool(calls, returncode=1)):
            with self.assertRaises(ToolchainError) as ctx:
                build(self.source, Stage.ASSEMBLE)
        self.assertIn("boom", str(ctx.exception))

    def test_missing_tool_raises(self) -> None:
        with mock.patch("tinybfc.toolchain.subprocess.run", side_effect=FileNotFoundError("as")):
            with self.assertRaises(ToolchainError):
                build(self.source, Stage.ASSEMBLE)


class CLITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write_source(self, content: str, name: str = "program.bf") -> Path:
        path = self.tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_cli_emits_listing(self) -> None:
        source_path = self._write_source("+[-]")
        output_path = self.tmp_path / "out.s"
        exit_code = cli_main([str(source_path), "-S", "-o", str(output_path), "-s", "0x100"])
        self.assertEqual(exit_code, 0)
        expected = Compiler(MemoryLayout(256)).compile("+[-]")
        self.assertEqual(output_path.read_text(encoding="utf-8"), expected)

    def test_compile_only_wins_over_assemble(self) -> None:
        source_path = self._write_source("+")
        with mock.patch("tinybfc.toolchain.subprocess.run") as run:
            exit_code = cli_main([str(source_path), "-c", "-S"])
        self.assertEqual(exit_code, 0)
        run.assert_not_called()
        self.assertTrue((self.tmp_path / "program.s").exists())

    def test_cli_run_outputs_program_result(self) -> None:
        source_path = self._write_source(HELLO_WORLD)
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            exit_code = cli_main([str(source_path), "--run"])
        self.assertEqual(exit_code, 0)
        self.assertEqual(buffer.getvalue(), "Hello World!\n")

    def test_cli_run_uses_input(self) -> None:
        source_path = self._write_source(",[.[-],]")
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            exit_code = cli_main([str(source_path), "--run", "--input", "hi"])
        self.assertEqual(exit_code, 0)
        self.assertEqual(buffer.getvalue(), "hi")

    def test_cli_missing_file_errors(self) -> None:
        buffer = io.StringIO()
        with redirect_stderr(buffer):
            exit_code = cli_main([str(self.tmp_path / "does_not_exist.bf")])
        self.assertEqual(exit_code, 1)
        self.assertIn("Source file not found", buffer.getvalue())

    def test_cli_reports_unbalanced_bracket(self) -> None:
        source_path = self._write_source("+]")
        buffer = io.StringIO()
        with redirect_stderr(buffer):
            exit_code = cli_main([str(source_path), "-S"])
        self.assertEqual(exit_code, 1)
        self.assertIn("tinybfc: Unmatched ']' at position 1", buffer.getvalue())
        self.assertFalse((self.tmp_path / "program.s").exists())

    def test_cli_reports_unwritable_output(self) -> None:
        source_path = self._write_source("+")
        target = self.tmp_path / "missing" / "out.s"
        buffer = io.StringIO()
        with redirect_stderr(buffer):
            exit_code = cli_main([str(source_path), "-S", "-o", str(target)])
        self.assertEqual(exit_code, 1)
        self.assertIn("tinybfc: Could not write file", buffer.getvalue())

    def test_cli_rejects_bad_size(self) -> None:
        source_path = self._write_source("+")
        for size in ("0", "-4", "lots"):
            with self.subTest(size=size):
                with redirect_stderr(io.StringIO()):
                    with self.assertRaises(SystemExit) as ctx:
                        cli_main([str(source_path), "-s", size])
                self.assertEqual(ctx.exception.code, 2)


@unittest.skipUnless(HAVE_TOOLCHAIN, "GNU as/ld for x86 are not available")
class EndToEndTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _build_and_run(self, source: str, stdin: bytes = b"") -> bytes:
        source_path = self.tmp_path / "prog.bf"
        source_path.write_text(source, encoding="utf-8")
        binary = build(source_path, Stage.LINK, output=self.tmp_path / "prog")
        result = subprocess.run([str(binary)], input=stdin, capture_output=True, timeout=10)
        if result.returncode < 0:
            self.skipTest("kernel does not service int 0x80 system calls")
        self.assertEqual(result.returncode, 0)
        return result.stdout

    def test_hello_world(self) -> None:
        self.assertEqual(self._build_and_run(HELLO_WORLD), b"Hello World!\n")

    def test_echo_leaves_cell_unchanged_at_end_of_input(self) -> None:
        self.assertEqual(self._build_and_run(",[.[-],]", stdin=b"abc"), b"abc")


if __name__ == "__main__":
    unittest.main()
