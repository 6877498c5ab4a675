"""Phase sequencing: generate, validate, execute, and continuous mode."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterator

import structlog

from remediate.config import TRIGGER_POLL_SECONDS
from remediate.db.connection import DataSource
from remediate.execute import ExecuteResult, execute_jobs
from remediate.generate.strategies import JobStrategy, StrategyName, build_strategy
from remediate.generate.workflows import GenerateResult, generate_jobs
from remediate.jobs.store import JobStore
from remediate.reference.zip_county import ZipCountyMap
from remediate.settings import AppSettings
from remediate.validate import ValidateResult, validate_jobs

logger = structlog.get_logger()

Reporter = Callable[[str, dict[str, Any]], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    VALIDATING = "validating"
    EXECUTING = "executing"
    WAITING = "waiting"


class ManualTrigger:
    """Request the next continuous-mode cycle before the wait runs out."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def fire(self) -> None:
        self._event.set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)

    def consume(self) -> bool:
        fired = self._event.is_set()
        self._event.clear()
        return fired

    @contextmanager
    def listen(self) -> Iterator[ManualTrigger]:
        """Fire on SIGUSR1 while the block runs.

        Outside the main thread, or where SIGUSR1 does not exist, no handler
        is installed and only ``fire`` sets the trigger.
        """

        signum = getattr(signal, "SIGUSR1", None)
        if signum is None or threading.current_thread() is not threading.main_thread():
            yield self
            return

        original = signal.getsignal(signum)

        def _handler(received: int, frame: Any) -> None:
            self.fire()

        signal.signal(signum, _handler)
        try:
            yield self
        finally:
            signal.signal(signum, original)


def _no_report(event: str, payload: dict[str, Any]) -> None:
    return None


class Pipeline:
    """Owns the settings, the data source handle and the job store for one run."""

    def __init__(
        self,
        settings: AppSettings,
        data_source: DataSource,
        store: JobStore,
        *,
        zip_map: ZipCountyMap | None = None,
        report: Reporter = _no_report,
        poll_seconds: float = TRIGGER_POLL_SECONDS,
    ) -> None:
        self.settings = settings
        self.data_source = data_source
        self.store = store
        self.zip_map = zip_map
        self.report = report
        self.poll_seconds = poll_seconds
        self.state = PipelineState.IDLE

    def _enter(self, state: PipelineState) -> None:
        logger.info("pipeline_state", previous=self.state.value, state=state.value)
        self.state = state

    def strategy(self, name: StrategyName | None = None) -> JobStrategy:
        return build_strategy(
            name or self.settings.strategy,
            template=self.settings.update_query_template,
            key_field_name=self.settings.key_field_name,
            zip_field_name=self.settings.zip_field_name,
            county_field_name=self.settings.county_field_name,
            zip_map=self.zip_map,
        )

    def generate(self, strategy: StrategyName | None = None) -> GenerateResult:
        job_strategy = self.strategy(strategy)
        self._enter(PipelineState.GENERATING)
        try:
            with self.data_source.connect() as conn:
                result = generate_jobs(
                    conn,
                    self.store,
                    job_strategy,
                    selection_statement=self.settings.selection_query,
                    batch_size=self.settings.batch_size,
                )
        finally:
            self._enter(PipelineState.IDLE)
        self.report("generate", asdict(result))
        return result

    def validate(self) -> ValidateResult:
        self._enter(PipelineState.VALIDATING)
        try:
            result = validate_jobs(self.store)
        finally:
            self._enter(PipelineState.IDLE)
        self.report("test", asdict(result))
        return result

    def test(self) -> tuple[GenerateResult, ValidateResult]:
        return self.generate(), self.validate()

    def execute(self) -> ExecuteResult:
        self._enter(PipelineState.EXECUTING)
        try:
            with self.data_source.connect(autocommit=True) as conn:
                result = execute_jobs(
                    conn,
                    self.store,
                    no_rows_policy=self.settings.no_rows_policy,
                )
        finally:
            self._enter(PipelineState.IDLE)
        self.report("execute", asdict(result))
        return result

    def repair(
        self,
        strategy: StrategyName,
        confirm: Callable[[], bool],
    ) -> tuple[GenerateResult, ExecuteResult | None]:
        """Generate county repairs and execute them once confirmed."""

        generated = self.generate(strategy)
        if generated.generated == 0:
            logger.info("county_repair_not_needed", strategy=strategy.value)
            return generated, None
        if not confirm():
            logger.info("county_repair_not_executed", generated=generated.generated)
            return generated, None
        return generated, self.execute()

    def wait_for_next_cycle(self, trigger: ManualTrigger) -> bool:
        """Sleep ``check_again_after`` seconds in short polls; True if triggered early."""

        self._enter(PipelineState.WAITING)
        interval = float(self.settings.check_again_after)
        next_check = datetime.now(timezone.utc) + timedelta(seconds=interval)
        self.report("waiting", {"next_check_at": next_check.isoformat(), "trigger": "SIGUSR1"})

        triggered = False
        elapsed = 0.0
        try:
            while elapsed < interval:
                if trigger.wait(self.poll_seconds):
                    trigger.consume()
                    triggered = True
                    logger.info("manual_check_triggered", waited_seconds=elapsed)
                    break
                elapsed += self.poll_seconds
        finally:
            self._enter(PipelineState.IDLE)
        return triggered

    def run_forever(self, trigger: ManualTrigger, *, max_cycles: int | None = None) -> int:
        """Repeat generate then execute, waiting between cycles.

        With ``max_cycles`` unset this never returns; the process is stopped
        from outside. Returns the number of completed cycles otherwise.
        """

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            self.generate()
            self.execute()
            cycles += 1
            logger.info("continuous_cycle_completed", cycle=cycles)
            if max_cycles is not None and cycles >= max_cycles:
                break
            self.wait_for_next_cycle(trigger)
        return cycles
