"""Lifecycle orchestrator - provisions, runs, tears down and retries scenarios."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from rigger.core.context import ScenarioContext
from rigger.core.errors import (
    ConfigurationError,
    ExecutionFailure,
    SetupFailure,
    SkipScenario,
)
from rigger.core.models import (
    LifecycleState,
    ResourceKind,
    RoutingDecision,
    ScenarioDescriptor,
    ScenarioOutcome,
    ScenarioStatus,
)
from rigger.core.retry import RetryPolicy, RetryState

if TYPE_CHECKING:
    from pathlib import Path

    from rigger.config.schema import ProfileConfig
    from rigger.core.capture import ScreenshotCapture
    from rigger.core.pool import WorkerResourcePool
    from rigger.core.reporting import ReportSink
    from rigger.core.router import TagRouter

logger = logging.getLogger(__name__)

ScenarioBody = Callable[[ScenarioContext], Any]

_TRANSITIONS: Dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.IDLE: frozenset({LifecycleState.SETTING_UP, LifecycleState.REPORTING}),
    LifecycleState.SETTING_UP: frozenset({
        LifecycleState.RUNNING,
        LifecycleState.TEARING_DOWN,
        LifecycleState.REPORTING,
    }),
    LifecycleState.RUNNING: frozenset({LifecycleState.TEARING_DOWN}),
    LifecycleState.TEARING_DOWN: frozenset({LifecycleState.REPORTING}),
    LifecycleState.REPORTING: frozenset({LifecycleState.IDLE, LifecycleState.RETRYING}),
    LifecycleState.RETRYING: frozenset({LifecycleState.SETTING_UP, LifecycleState.REPORTING}),
}


class LifecycleOrchestrator:
    """Runs scenarios for one worker.

    Handles:
    - Routing tags to resource kinds and an environment profile
    - Acquiring resources from the worker's pool partition
    - Guaranteed teardown on every exit path
    - Screenshot capture on failure
    - Bounded retries and outcome reporting

    UI sessions are released after every scenario. API contexts and database
    connections stay pooled on the worker until invalidated or shutdown().
    """

    def __init__(
        self,
        worker_id: str,
        pool: WorkerResourcePool,
        router: TagRouter,
        retry_policy: RetryPolicy,
        resolve_profile: Callable[[str], ProfileConfig],
        sink: Optional[ReportSink] = None,
        capture: Optional[ScreenshotCapture] = None,
        on_transition: Optional[Callable[[LifecycleState, LifecycleState], None]] = None,
    ):
        self.worker_id = worker_id
        self.pool = pool
        self.router = router
        self.retry_policy = retry_policy
        self.resolve_profile = resolve_profile
        self.sink = sink
        self.capture = capture
        self.on_transition = on_transition

        self.state = LifecycleState.IDLE
        self.context: Optional[ScenarioContext] = None
        self._session_data: Dict[str, Any] = {}

    @property
    def session_data(self) -> Dict[str, Any]:
        return self._session_data

    def run(self, descriptor: ScenarioDescriptor, body: ScenarioBody) -> ScenarioOutcome:
        """Run a scenario to its final outcome.

        Args:
            descriptor: Scenario to run
            body: Callable receiving the ScenarioContext

        Returns:
            ScenarioOutcome that was handed to the reporting sink
        """
        started_at = datetime.now()
        logger.info(f"[{self.worker_id}] Starting scenario: {descriptor.name}")
        logger.debug(f"[{self.worker_id}] Scenario tags: {sorted(descriptor.tags)}")

        try:
            decision = self.router.resolve(descriptor.tags)
            profile = self.resolve_profile(decision.profile)
        except ConfigurationError as e:
            logger.error(f"[{self.worker_id}] Skipping '{descriptor.name}': {e}")
            outcome = ScenarioOutcome(
                scenario_name=descriptor.name,
                status=ScenarioStatus.SKIPPED,
                attempts=0,
                error=str(e),
                failure="routing",
                worker_id=self.worker_id,
                started_at=started_at,
            )
            self._finish(outcome)
            return outcome

        retry_state = RetryState(descriptor.name, self.retry_policy.max_attempts)
        artifacts: List[Path] = []

        try:
            while True:
                attempt = retry_state.begin_attempt()
                status, error, failure = self._attempt(
                    descriptor, body, decision, profile, attempt, artifacts
                )
                self._transition(LifecycleState.REPORTING)

                if status != ScenarioStatus.FAILED:
                    break
                if not self.retry_policy.should_retry(retry_state.retries):
                    if retry_state.retries:
                        logger.error(
                            f"[{self.worker_id}] Scenario failed after "
                            f"{retry_state.attempts} attempts: {descriptor.name}"
                        )
                    break

                self._transition(LifecycleState.RETRYING)
                retry_number = retry_state.retries + 1
                logger.warning(
                    f"[{self.worker_id}] Retrying scenario: {descriptor.name} "
                    f"(retry {retry_number}/{self.retry_policy.max_attempts})"
                )
                self.retry_policy.wait(retry_number)

        except BaseException as e:
            # Anything escaping an attempt still gets one outcome and returns to IDLE
            logger.warning(f"[{self.worker_id}] Scenario interrupted: {descriptor.name}")
            outcome = ScenarioOutcome(
                scenario_name=descriptor.name,
                status=ScenarioStatus.FAILED,
                attempts=retry_state.attempts,
                artifacts=artifacts,
                error=f"interrupted: {type(e).__name__}",
                failure="interrupted",
                worker_id=self.worker_id,
                profile=profile.name,
                started_at=started_at,
            )
            self._finish(outcome)
            raise

        outcome = ScenarioOutcome(
            scenario_name=descriptor.name,
            status=status,
            attempts=retry_state.attempts,
            artifacts=artifacts,
            error=error,
            failure=failure,
            worker_id=self.worker_id,
            profile=profile.name,
            started_at=started_at,
        )
        self._finish(outcome)
        return outcome

    def shutdown(self) -> None:
        """Release every pooled resource of this worker and clear session data."""
        logger.info(f"[{self.worker_id}] Shutting down worker")
        self.pool.release_all(self.worker_id)
        context = self.context or ScenarioContext(self.worker_id, "", self._session_data)
        context.clear_all()
        self.context = None

    def _attempt(
        self,
        descriptor: ScenarioDescriptor,
        body: ScenarioBody,
        decision: RoutingDecision,
        profile: ProfileConfig,
        attempt: int,
        artifacts: List[Path],
    ) -> tuple[ScenarioStatus, Optional[str], Optional[str]]:
        """Run one attempt: setup, body, teardown.

        Returns:
            Tuple of (status, error message, failure category)
        """
        context = ScenarioContext(
            worker_id=self.worker_id,
            scenario_name=descriptor.name,
            session_data=self._session_data,
            profile=profile.name,
            data_source=decision.data_source,
        )
        self.context = context
        acquired: List[ResourceKind] = []
        status: Optional[ScenarioStatus] = None
        error: Optional[str] = None
        failure: Optional[str] = None

        self._transition(LifecycleState.SETTING_UP)
        try:
            try:
                for kind in decision.ordered_kinds:
                    handle = self.pool.acquire(self.worker_id, kind, profile)
                    acquired.append(kind)
                    context.attach(kind, handle)
            except SetupFailure as e:
                logger.error(f"[{self.worker_id}] Setup failed for '{descriptor.name}': {e}")
                status, error, failure = ScenarioStatus.FAILED, str(e), "setup"
            else:
                self._transition(LifecycleState.RUNNING)
                try:
                    body(context)
                except SkipScenario as e:
                    logger.info(f"[{self.worker_id}] Scenario skipped: {e.reason}")
                    status, error = ScenarioStatus.SKIPPED, e.reason
                except (KeyboardInterrupt, SystemExit):
                    raise
                except BaseException as e:
                    # Test framework outcomes (pytest.fail, pytest.skip) are BaseExceptions
                    exec_failure = ExecutionFailure(descriptor.name, e)
                    logger.exception(
                        f"[{self.worker_id}] Scenario failed (attempt {attempt}): "
                        f"{descriptor.name}"
                    )
                    status, error, failure = (
                        ScenarioStatus.FAILED, str(exec_failure), "execution"
                    )
                else:
                    status = ScenarioStatus.PASSED
                    logger.info(f"[{self.worker_id}] Scenario passed: {descriptor.name}")
        finally:
            if self.state == LifecycleState.RUNNING or acquired:
                self._transition(LifecycleState.TEARING_DOWN)
            failed = status not in (ScenarioStatus.PASSED, ScenarioStatus.SKIPPED)
            self._teardown(context, acquired, failed, attempt, artifacts)
            context.clear()

        return status, error, failure

    def _teardown(
        self,
        context: ScenarioContext,
        acquired: List[ResourceKind],
        failed: bool,
        attempt: int,
        artifacts: List[Path],
    ) -> None:
        """Release what this attempt acquired. Never raises."""
        if ResourceKind.UI_SESSION not in acquired:
            return

        if failed and self.capture is not None:
            try:
                path = self.capture.capture(
                    context.ui, context.scenario_name, self.worker_id, attempt
                )
                if path is not None:
                    artifacts.append(path)
            except Exception as e:
                logger.error(f"[{self.worker_id}] Screenshot capture failed: {e}")

        context.detach(ResourceKind.UI_SESSION)
        self.pool.release(self.worker_id, ResourceKind.UI_SESSION)

    def _finish(self, outcome: ScenarioOutcome) -> None:
        outcome.completed_at = datetime.now()
        self._transition(LifecycleState.REPORTING)
        logger.info(
            f"[{self.worker_id}] {outcome.scenario_name}: {outcome.status.value.upper()} "
            f"(attempts={outcome.attempts})"
        )
        if self.sink is not None:
            try:
                self.sink.report(outcome)
            except Exception as e:
                logger.error(f"[{self.worker_id}] Reporting sink failed: {e}")
        self._transition(LifecycleState.IDLE)

    def _transition(self, new_state: LifecycleState) -> None:
        old_state = self.state
        if new_state == old_state:
            return
        if new_state not in _TRANSITIONS[old_state]:
            raise RuntimeError(
                f"Invalid lifecycle transition {old_state.value} -> {new_state.value}"
            )
        self.state = new_state
        logger.debug(f"[{self.worker_id}] {old_state.value} -> {new_state.value}")
        if self.on_transition:
            self.on_transition(old_state, new_state)
