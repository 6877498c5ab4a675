import json
import sys
import tempfile
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "pipeline" / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from remediate.config import DEFAULT_BATCH_SIZE, DEFAULT_CHECK_AGAIN_AFTER  # noqa: E402
from remediate.execute import NoRowsPolicy  # noqa: E402
from remediate.generate.strategies import StrategyName  # noqa: E402
from remediate.settings import AppSettings, SettingsError, load_settings, with_overrides  # noqa: E402


class LoadSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "remediate.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, payload: object) -> None:
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_file_yields_defaults(self) -> None:
        settings = load_settings(self.path, environ={})

        self.assertEqual(AppSettings(), settings)
        self.assertEqual(DEFAULT_BATCH_SIZE, settings.batch_size)
        self.assertEqual(DEFAULT_CHECK_AGAIN_AFTER, settings.check_again_after)
        self.assertIs(StrategyName.TEMPLATE, settings.strategy)

    def test_file_values_are_coerced(self) -> None:
        self._write(
            {
                "dsn": "postgresql://db/records",
                "batch_size": "250",
                "strategy": "county_code",
                "no_rows_policy": "FAILED",
                "log_level": "debug",
                "log_format": "JSON",
            }
        )

        settings = load_settings(self.path, environ={})

        self.assertEqual("postgresql://db/records", settings.dsn)
        self.assertEqual(250, settings.batch_size)
        self.assertIs(StrategyName.COUNTY_CODE, settings.strategy)
        self.assertIs(NoRowsPolicy.FAILED, settings.no_rows_policy)
        self.assertEqual("DEBUG", settings.log_level)
        self.assertEqual("json", settings.log_format)

    def test_environment_overrides_file(self) -> None:
        self._write({"batch_size": 10, "dsn": "postgresql://file"})

        settings = load_settings(
            self.path,
            environ={"REMEDIATE_BATCH_SIZE": "20", "REMEDIATE_DB_PASSWORD": "secret"},
        )

        self.assertEqual(20, settings.batch_size)
        self.assertEqual("postgresql://file", settings.dsn)
        self.assertEqual("secret", settings.db_password)

    def test_invalid_values_are_rejected(self) -> None:
        cases = [
            {"batch_size": 0},
            {"batch_size": "-5"},
            {"timeout_seconds": True},
            {"check_again_after": "soon"},
            {"strategy": "guess"},
            {"no_rows_policy": "maybe"},
            {"log_level": "LOUD"},
            {"log_format": "xml"},
            {"dsn": 42},
            {"selection_query": "   "},
            {"unexpected": "value"},
        ]
        for payload in cases:
            with self.subTest(payload=payload):
                self._write(payload)
                with self.assertRaises(SettingsError):
                    load_settings(self.path, environ={})

    def test_malformed_file_is_rejected(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaisesRegex(SettingsError, "Invalid JSON"):
            load_settings(self.path, environ={})

        self._write(["not", "an", "object"])
        with self.assertRaisesRegex(SettingsError, "must be an object"):
            load_settings(self.path, environ={})

    def test_unreadable_file_is_rejected(self) -> None:
        self.path.mkdir()
        with self.assertRaisesRegex(SettingsError, "Unable to read settings file"):
            load_settings(self.path, environ={})

        other = Path(self._tmp.name) / "latin1.json"
        other.write_bytes(b'{"dsn": "caf\xe9"}')
        with self.assertRaisesRegex(SettingsError, "Unable to read settings file"):
            load_settings(other, environ={})


class SettingsHelpersTests(unittest.TestCase):
    def test_require_dsn(self) -> None:
        with self.assertRaisesRegex(SettingsError, "REMEDIATE_DSN"):
            AppSettings().require_dsn()
        self.assertEqual("postgresql://x", AppSettings(dsn="postgresql://x").require_dsn())

    def test_with_overrides_ignores_missing_values(self) -> None:
        base = AppSettings(dsn="postgresql://base")

        self.assertEqual(base, with_overrides(base, dsn=None, results_dir=None))
        self.assertEqual("postgresql://cli", with_overrides(base, dsn="postgresql://cli").dsn)


if __name__ == "__main__":
    unittest.main()
