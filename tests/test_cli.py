import io
import json
import logging
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "pipeline" / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from remediate.cli import _parser, main  # noqa: E402
from remediate.jobs.models import ErrorRecord, JobRecord  # noqa: E402
from remediate.jobs.store import JobStore  # noqa: E402


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.workdir = Path(self._tmp.name)
        self.results_dir = self.workdir / "results"
        self.config = self.workdir / "remediate.json"

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        self._tmp.cleanup()

    def _main(self, *argv: str) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        environ = {key: value for key, value in os.environ.items() if not key.startswith("REMEDIATE_")}
        with mock.patch.dict(os.environ, environ, clear=True), redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(["--config", str(self.config), "--results-dir", str(self.results_dir), *argv])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_parser_knows_every_command(self) -> None:
        parser = _parser()
        for command in (
            "generate",
            "execute",
            "test",
            "run",
            "setup-test",
            "clean-test",
            "update-county-codes",
            "update-county-code-from-countyfp",
            "errors",
        ):
            with self.subTest(command=command):
                self.assertEqual(command, parser.parse_args([command]).command)

        self.assertIsNone(parser.parse_args([]).command)
        self.assertEqual(1000, parser.parse_args(["setup-test"]).count)
        self.assertTrue(parser.parse_args(["update-county-code-from-countyfp", "--yes"]).yes)
        self.assertTrue(parser.parse_args(["-c", "errors"]).clean)

    def test_errors_command_prints_error_log(self) -> None:
        store = JobStore(self.results_dir)
        self.results_dir.mkdir(parents=True)
        store.append_error(
            ErrorRecord(key="a", file="a.json", error="boom", timestamp="2026-01-01T00:00:00+00:00")
        )

        code, stdout, stderr = self._main("errors")

        self.assertEqual(0, code)
        self.assertEqual("", stderr)
        lines = [json.loads(line) for line in stdout.splitlines()]
        self.assertEqual("boom", lines[0]["errors"][0]["error"])
        self.assertEqual(
            {"status": "ok", "command": "errors", "results_dir": str(self.results_dir)},
            lines[-1],
        )
        self.assertTrue((self.results_dir / "batch_process.log").exists())

    def test_clean_flag_wipes_working_directory(self) -> None:
        store = JobStore(self.results_dir)
        self.results_dir.mkdir(parents=True)
        store.save(JobRecord(key="stale", statement="UPDATE t SET a = 1 WHERE id = 'stale'"))

        code, _, _ = self._main("-c", "errors")

        self.assertEqual(0, code)
        self.assertFalse((self.results_dir / "stale.json").exists())

    def test_missing_dsn_is_an_error(self) -> None:
        code, stdout, stderr = self._main("generate")

        self.assertEqual(1, code)
        self.assertEqual("", stdout)
        payload = json.loads(stderr)
        self.assertEqual("error", payload["status"])
        self.assertIn("dsn", payload["error"])

    def test_invalid_settings_file_is_an_error(self) -> None:
        self.config.write_text(json.dumps({"batch_size": 0}), encoding="utf-8")

        code, _, stderr = self._main("errors")

        self.assertEqual(1, code)
        self.assertIn("batch_size", json.loads(stderr)["error"])
        self.assertFalse(self.results_dir.exists())


    def test_config_path_that_is_a_directory_is_an_error(self) -> None:
        config_dir = self.workdir / "config_dir"
        config_dir.mkdir()
        self.config = config_dir

        code, stdout, stderr = self._main("errors")

        self.assertEqual(1, code)
        self.assertEqual("", stdout)
        self.assertIn("Unable to read settings file", json.loads(stderr)["error"])

    def test_results_dir_that_is_a_file_is_an_error(self) -> None:
        self.results_dir.write_text("", encoding="utf-8")

        code, _, stderr = self._main("errors")

        self.assertEqual(1, code)
        self.assertIn("Unable to prepare working directory", json.loads(stderr)["error"])

    def test_positional_repair_help_names_column_order(self) -> None:
        help_text = " ".join(_parser().format_help().split())

        self.assertIn("the selection must return key, zip, county in that order", help_text)


if __name__ == "__main__":
    unittest.main()
