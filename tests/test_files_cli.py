import io
import os
import subprocess
import sys
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

try:
    from cbcseal.main import cbcseal, cli
    from cbcseal.errors import InvalidDataError
except ModuleNotFoundError as exc:  # pragma: no cover - dependency missing
    cbcseal = None
    _IMPORT_ERROR = exc
else:
    _IMPORT_ERROR = None


class _TempDirMixin:
    def setUp(self) -> None:
        self.tmpdir = TemporaryDirectory()
        self.tmp_path = Path(self.tmpdir.name)
        self.repo_root = Path(__file__).resolve().parent.parent
        env_patch = mock.patch.dict(os.environ)
        env_patch.start()
        self.addCleanup(env_patch.stop)
        os.environ.pop("CBCSEAL_PASSWORD", None)
        os.environ.pop("CBCSEAL_SALT", None)

    def tearDown(self) -> None:
        self.tmpdir.cleanup()


@unittest.skipIf(cbcseal is None, f"dependency unavailable: {_IMPORT_ERROR}")
class FileHelperTests(_TempDirMixin, unittest.TestCase):
    def test_encrypt_then_decrypt_file(self):
        src = self.tmp_path / "note.txt"
        src.write_text("classified", encoding="utf-8")

        sealed = cbcseal.encrypt_file(src, "pw", "salt")
        self.assertEqual(sealed.name, "note.txt.cbc")
        self.assertFalse(src.exists())
        self.assertEqual(sealed.stat().st_size % 16, 0)

        restored = cbcseal.decrypt_file(sealed, "pw", "salt")
        self.assertEqual(restored.name, "note.txt")
        self.assertEqual(restored.read_text(encoding="utf-8"), "classified")
        self.assertFalse(sealed.exists())

    def test_keep_input_and_explicit_output(self):
        src = self.tmp_path / "data.bin"
        src.write_bytes(b"\x00\x01\x02" * 50)
        target = self.tmp_path / "custom.sealed"

        out = cbcseal.encrypt_file(src, "pw", "salt", output=target, keep_input=True)
        self.assertEqual(out, cbcseal._normalize_path(target))
        self.assertTrue(src.exists())

        restored = cbcseal.decrypt_file(target, "pw", "salt", keep_input=True)
        self.assertEqual(restored.name, "custom.sealed.dec")
        self.assertEqual(restored.read_bytes(), src.read_bytes())
        self.assertTrue(target.exists())

    def test_failed_decrypt_writes_nothing(self):
        bad = self.tmp_path / "bad.cbc"
        bad.write_bytes(bytes(17))
        with self.assertRaises(InvalidDataError):
            cbcseal.decrypt_file(bad, "pw", "salt")
        self.assertTrue(bad.exists())
        self.assertFalse((self.tmp_path / "bad").exists())

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            cbcseal.encrypt_file(self.tmp_path / "absent.txt", "pw", "salt")

    def test_empty_file(self):
        src = self.tmp_path / "empty.txt"
        src.write_bytes(b"")
        with self.assertRaises(InvalidDataError):
            cbcseal.encrypt_file(src, "pw", "salt")
        self.assertTrue(src.exists())

    def test_size_limit(self):
        src = self.tmp_path / "big.txt"
        src.write_bytes(b"x" * 64)
        with mock.patch.object(cbcseal, "MAX_INPUT_BYTES", 16):
            with self.assertRaises(ValueError) as ctx:
                cbcseal.encrypt_file(src, "pw", "salt")
        self.assertIn("in-memory limit", str(ctx.exception))

    def test_handle_files_toggles_by_suffix(self):
        first = self.tmp_path / "a.txt"
        second = self.tmp_path / "b.txt"
        first.write_text("alpha", encoding="utf-8")
        second.write_text("beta", encoding="utf-8")

        result = cbcseal.handle_files([first, second], "pw", "salt", silent=True)
        self.assertIsInstance(result, dict)
        self.assertEqual(set(result.values()), {"SUCCESS!"})
        sealed = [self.tmp_path / "a.txt.cbc", self.tmp_path / "b.txt.cbc"]
        self.assertTrue(all(p.exists() for p in sealed))

        result = cbcseal.handle_files(sealed, "pw", "salt", silent=True)
        self.assertEqual(set(result.values()), {"SUCCESS!"})
        self.assertEqual(first.read_text(encoding="utf-8"), "alpha")
        self.assertEqual(second.read_text(encoding="utf-8"), "beta")

    def test_handle_files_reads_password_file(self):
        pw_file = self.tmp_path / "pw.txt"
        pw_file.write_text("file-password\n", encoding="utf-8")
        src = self.tmp_path / "doc.txt"
        src.write_text("body", encoding="utf-8")

        self.assertEqual(cbcseal.handle_files(src, str(pw_file), "salt", silent=True), "SUCCESS!")
        restored = cbcseal.decrypt_file(self.tmp_path / "doc.txt.cbc", "file-password", "salt")
        self.assertEqual(restored.read_text(encoding="utf-8"), "body")

    def test_handle_files_reports_failures(self):
        missing = self.tmp_path / "missing.txt"
        self.assertEqual(cbcseal.handle_files(missing, "pw", "salt", silent=True), "FAIL!")
        self.assertEqual(cbcseal.handle_files(missing, "", "salt", silent=True), "FAIL!")

        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.assertEqual(cbcseal.handle_files(missing, "pw", "salt"), "FAIL!")
        self.assertIn("Failed to process", buffer.getvalue())
        self.assertFalse(cbcseal._SILENT_MODE)

    def test_handle_files_processes_repeated_path_once(self):
        src = self.tmp_path / "a.txt"
        src.write_text("once", encoding="utf-8")
        self.assertEqual(len(cbcseal._coerce_file_list([src, str(src)])), 1)

        result = cbcseal.handle_files([src, str(src)], "pw", "salt", silent=True)
        self.assertEqual(result, "SUCCESS!")
        self.assertFalse(src.exists())
        restored = cbcseal.decrypt_file(self.tmp_path / "a.txt.cbc", "pw", "salt")
        self.assertEqual(restored.read_text(encoding="utf-8"), "once")

    def test_handle_files_rejects_empty_list(self):
        with self.assertRaises(ValueError):
            cbcseal.handle_files([], "pw", "salt")


@unittest.skipIf(cbcseal is None, f"dependency unavailable: {_IMPORT_ERROR}")
class CliTests(_TempDirMixin, unittest.TestCase):
    def _run_cli(self, *args: str) -> subprocess.CompletedProcess:
        env = os.environ.copy()
        env["PYTHONPATH"] = os.pathsep.join(
            filter(None, [str(self.repo_root), env.get("PYTHONPATH")])
        )
        return subprocess.run(
            [sys.executable, "-m", "cbcseal", *args],
            cwd=self.repo_root,
            capture_output=True,
            text=True,
            env=env,
        )

    def _cli(self, *args: str) -> "tuple[int, str]":
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = cli(list(args))
        return code, buffer.getvalue().strip()

    def test_text_roundtrip(self):
        code, token = self._cli("encrypt-text", "hello there", "-p", "pw", "-s", "salt")
        self.assertEqual(code, 0)
        code, plain = self._cli("decrypt-text", token, "-p", "pw", "-s", "salt")
        self.assertEqual(code, 0)
        self.assertEqual(plain, "hello there")

    def test_environment_fallbacks(self):
        os.environ["CBCSEAL_PASSWORD"] = "env-pw"
        os.environ["CBCSEAL_SALT"] = "env-salt"
        code, token = self._cli("encrypt-text", "from env")
        self.assertEqual(code, 0)
        self.assertEqual(cbcseal.decrypt_text(token, "env-pw", "env-salt"), "from env")

    def test_missing_secrets(self):
        code, output = self._cli("encrypt-text", "x", "-s", "salt")
        self.assertEqual(code, 2)
        self.assertIn("Password required", output)
        code, output = self._cli("encrypt-text", "x", "-p", "pw")
        self.assertEqual(code, 2)
        self.assertIn("Salt required", output)

    def test_decrypt_text_failure(self):
        code, output = self._cli("decrypt-text", "AAAA", "-p", "pw", "-s", "salt")
        self.assertEqual(code, 1)
        self.assertTrue(output.startswith("Error:"))

    def test_file_command(self):
        src = self.tmp_path / "report.txt"
        src.write_text("quarterly", encoding="utf-8")
        code, _ = self._cli("file", str(src), "-p", "pw", "-s", "salt", "--keep-input", "--silent")
        self.assertEqual(code, 0)
        self.assertTrue(src.exists())
        sealed = self.tmp_path / "report.txt.cbc"
        self.assertTrue(sealed.exists())

        src.unlink()
        code, output = self._cli("file", str(sealed), "-p", "pw", "-s", "salt")
        self.assertEqual(code, 0)
        self.assertIn("->", output)
        self.assertEqual(src.read_text(encoding="utf-8"), "quarterly")
        self.assertFalse(sealed.exists())

    def test_file_command_failure_exit_code(self):
        code, _ = self._cli("file", str(self.tmp_path / "nope.txt"), "-p", "pw", "-s", "salt", "--silent")
        self.assertEqual(code, 1)

    def test_module_entrypoint(self):
        version = self._run_cli("--version")
        self.assertEqual(version.returncode, 0, version.stderr)
        self.assertIn(f"cbcseal {cbcseal.ENGINE_VERSION}", version.stdout)

        enc = self._run_cli("encrypt-text", "subprocess", "-p", "pw", "-s", "salt")
        self.assertEqual(enc.returncode, 0, enc.stderr)
        dec = self._run_cli("decrypt-text", enc.stdout.strip(), "-p", "pw", "-s", "salt")
        self.assertEqual(dec.returncode, 0, dec.stderr)
        self.assertEqual(dec.stdout.strip(), "subprocess")


if __name__ == "__main__":
    unittest.main()
