"""Suite runner - dispatches scenarios onto parallel workers."""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Mapping, Optional

from rigger.core.capture import ScreenshotCapture
from rigger.core.models import ResourceKind, ScenarioCase, ScenarioOutcome, ScenarioStatus
from rigger.core.orchestrator import LifecycleOrchestrator
from rigger.core.pool import TokenCache, WorkerResourcePool
from rigger.core.reporting import CollectingReportSink, ReportSink
from rigger.core.retry import RetryPolicy
from rigger.core.router import TagRouter

if TYPE_CHECKING:
    from rigger.config.schema import RiggerConfig
    from rigger.resources.base import ResourceFactory

logger = logging.getLogger(__name__)


class SuiteRunner:
    """Runs scenario cases across N worker threads.

    Each worker has its own orchestrator and pool partition and runs the
    scenarios it pulls from the shared queue one after another. When the
    queue is drained the worker shuts down, releasing everything it holds.
    """

    def __init__(
        self,
        config: RiggerConfig,
        factories: Mapping[ResourceKind, ResourceFactory],
        sink: Optional[ReportSink] = None,
        workers: Optional[int] = None,
        token_cache: Optional[TokenCache] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.workers = workers or config.execution.workers
        self.sink = sink if sink is not None else CollectingReportSink()
        self.pool = WorkerResourcePool(factories, token_cache=token_cache)
        self.router = TagRouter.from_config(config.routing, config.environment)
        self.capture = ScreenshotCapture(
            Path(config.output.directory) / config.output.screenshot_dir,
            timestamp_format=config.output.timestamp_format,
        )
        self._sleep = sleep

    def create_orchestrator(self, worker_id: str) -> LifecycleOrchestrator:
        """Build the orchestrator owned by one worker."""
        return LifecycleOrchestrator(
            worker_id=worker_id,
            pool=self.pool,
            router=self.router,
            retry_policy=RetryPolicy.from_config(self.config.retry, sleep=self._sleep),
            resolve_profile=self.config.get_profile,
            sink=self.sink,
            capture=self.capture,
        )

    def run(self, cases: Iterable[ScenarioCase]) -> List[ScenarioOutcome]:
        """Run all cases and return their outcomes in completion order."""
        pending: "queue.Queue[ScenarioCase]" = queue.Queue()
        total = 0
        for case in cases:
            pending.put(case)
            total += 1

        if total == 0:
            logger.warning("No scenarios to run")
            self.sink.close()
            return []

        worker_count = max(1, min(self.workers, total))
        logger.info(f"Running {total} scenario(s) on {worker_count} worker(s)")

        # One list per worker; filled in place so a dying worker keeps its outcomes
        collected: List[List[ScenarioOutcome]] = [[] for _ in range(worker_count)]
        error: Optional[BaseException] = None
        try:
            with ThreadPoolExecutor(
                max_workers=worker_count, thread_name_prefix="rigger"
            ) as executor:
                futures = [
                    executor.submit(
                        self._worker_loop, f"worker-{i + 1}", pending, collected[i]
                    )
                    for i in range(worker_count)
                ]
                for future in futures:
                    exc = future.exception()
                    if exc is not None and error is None:
                        error = exc
        finally:
            self.pool.token_cache.clear()
            self.sink.close()

        if error is not None:
            raise error
        return [outcome for outcomes in collected for outcome in outcomes]

    def _worker_loop(
        self,
        worker_id: str,
        pending: "queue.Queue[ScenarioCase]",
        outcomes: List[ScenarioOutcome],
    ) -> List[ScenarioOutcome]:
        orchestrator = self.create_orchestrator(worker_id)
        try:
            while True:
                try:
                    case = pending.get_nowait()
                except queue.Empty:
                    break
                try:
                    outcome = orchestrator.run(case.descriptor, case.body)
                except Exception as e:
                    logger.exception(
                        f"[{worker_id}] Internal error running '{case.descriptor.name}'"
                    )
                    outcome = self._internal_failure(worker_id, case, e)
                    # The orchestrator may be mid-lifecycle; start the worker afresh
                    orchestrator.shutdown()
                    orchestrator = self.create_orchestrator(worker_id)
                outcomes.append(outcome)
        finally:
            orchestrator.shutdown()
        return outcomes

    def _internal_failure(
        self,
        worker_id: str,
        case: ScenarioCase,
        error: Exception,
    ) -> ScenarioOutcome:
        """Report a FAILED outcome for a scenario the orchestrator could not finish."""
        now = datetime.now()
        outcome = ScenarioOutcome(
            scenario_name=case.descriptor.name,
            status=ScenarioStatus.FAILED,
            attempts=0,
            error=f"{type(error).__name__}: {error}",
            failure="internal",
            worker_id=worker_id,
            started_at=now,
            completed_at=now,
        )
        try:
            self.sink.report(outcome)
        except Exception as e:
            logger.error(f"[{worker_id}] Reporting sink failed: {e}")
        return outcome
