import json
import sys
import tempfile
import unittest
from pathlib import Path

import psycopg


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "pipeline" / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from fake_db import NO_ROWS, RESULT_SET, FakeConnection  # noqa: E402
from remediate.execute import (  # noqa: E402
    RESULT_SUCCESS,
    RESULT_SUCCESS_NO_ROWS,
    NoRowsPolicy,
    execute_jobs,
)
from remediate.jobs.models import JobRecord, JobStatus  # noqa: E402
from remediate.jobs.store import JobStore  # noqa: E402


GOOD = "UPDATE t SET a = '1' WHERE id = 'good'"
EMPTY = "UPDATE t SET a = '1' WHERE id = 'missing'"
BROKEN = "UPDATE nowhere SET a = '1' WHERE id = 'broken'"


class ExecuteJobsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.results_dir = Path(self._tmp.name)
        self.store = JobStore(self.results_dir)
        self.store.save(JobRecord(key="good", statement=GOOD))
        self.store.save(JobRecord(key="empty", statement=EMPTY))
        self.store.save(JobRecord(key="broken", statement=BROKEN))
        self.conn = FakeConnection(
            outcomes={
                EMPTY: NO_ROWS,
                BROKEN: psycopg.Error('relation "nowhere" does not exist'),
            }
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_outcomes_are_classified_and_written_back(self) -> None:
        result = execute_jobs(self.conn, self.store)

        self.assertEqual((3, 2, 1, 0), (result.total, result.succeeded, result.failed, result.skipped))

        good = self.store.get("good")
        self.assertIs(JobStatus.COMPLETED, good.status)
        self.assertEqual(RESULT_SUCCESS, good.result)
        self.assertIsNotNone(good.timestamp)

        empty = self.store.get("empty")
        self.assertIs(JobStatus.COMPLETED, empty.status)
        self.assertEqual(RESULT_SUCCESS_NO_ROWS, empty.result)

        broken = self.store.get("broken")
        self.assertIs(JobStatus.FAILED, broken.status)
        self.assertEqual('error: relation "nowhere" does not exist', broken.result)

        errors = self.store.read_errors()
        self.assertEqual(1, len(errors))
        self.assertEqual(("broken", "broken.json"), (errors[0].key, errors[0].file))
        self.assertEqual(broken.timestamp, errors[0].timestamp)

    def test_second_pass_skips_completed_jobs(self) -> None:
        execute_jobs(self.conn, self.store)
        first_pass_calls = len(self.conn.executed)

        second = execute_jobs(self.conn, self.store)

        self.assertEqual(3, first_pass_calls)
        self.assertEqual([BROKEN], self.conn.statements[first_pass_calls:])
        self.assertEqual((3, 0, 1, 2), (second.total, second.succeeded, second.failed, second.skipped))
        self.assertEqual(2, len(self.store.read_errors()))

    def test_completed_job_file_is_not_rewritten(self) -> None:
        execute_jobs(self.conn, self.store)
        path = self.results_dir / "good.json"
        before = path.read_text(encoding="utf-8")

        execute_jobs(self.conn, self.store)

        self.assertEqual(before, path.read_text(encoding="utf-8"))

    def test_no_rows_can_be_treated_as_failure(self) -> None:
        result = execute_jobs(self.conn, self.store, no_rows_policy=NoRowsPolicy.FAILED)

        self.assertEqual((1, 2), (result.succeeded, result.failed))
        empty = self.store.get("empty")
        self.assertIs(JobStatus.FAILED, empty.status)
        self.assertEqual("error: no rows updated", empty.result)
        self.assertEqual(["broken", "empty"], [e.key for e in self.store.read_errors()])

    def test_result_set_counts_as_success(self) -> None:
        self.conn.default_outcome = RESULT_SET
        execute_jobs(self.conn, self.store)
        self.assertEqual(RESULT_SUCCESS, self.store.get("good").result)

    def test_unreadable_job_counts_as_failure_and_is_left_alone(self) -> None:
        garbage = self.results_dir / "garbage.json"
        garbage.write_text("{oops", encoding="utf-8")

        result = execute_jobs(self.conn, self.store)

        self.assertEqual((4, 2), (result.total, result.failed))
        self.assertEqual("{oops", garbage.read_text(encoding="utf-8"))
        self.assertEqual(3, len(self.conn.executed))

    def test_failed_jobs_are_retried_on_next_pass(self) -> None:
        execute_jobs(self.conn, self.store)
        self.conn.outcomes.pop(BROKEN)

        execute_jobs(self.conn, self.store)

        broken = json.loads((self.results_dir / "broken.json").read_text(encoding="utf-8"))
        self.assertEqual("Completed", broken["status"])


if __name__ == "__main__":
    unittest.main()
