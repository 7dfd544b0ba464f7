"""
Scoring Pipeline - Runs one scoring + detection pass per learner.

Flow per user:
    topics + submissions (providers) -> ScoringStrategy -> WeakpointDetectorStrategy -> sink

A failed pass persists nothing and never affects other users' passes.
"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Union

from loguru import logger

from .config import Settings
from .datasource import (
    DataSourceConfig,
    FileImportConnector,
    LmsConnector,
    ManualEntryConnector,
    fetch_with_retries,
)
from .errors import ElevioError, UpstreamUnavailable
from .models import ScoredTopic, Submission, Topic, Weakpoint
from .scoring import ScoringStrategy
from .strategies import build_scoring_strategy, build_weakpoint_detector
from .weakpoints import WeakpointDetectorStrategy

AnyDataSource = Union[LmsConnector, FileImportConnector, ManualEntryConnector]


# ==================== Collaborator Contracts ====================

class TopicGraphProvider(Protocol):
    def get_topics(self, user_id: str) -> Sequence[Topic]:
        """Topic snapshot relevant to this user, already cycle-checked."""


class SubmissionProvider(Protocol):
    def get_submissions(self, user_id: str) -> Sequence[Submission]:
        """All of the user's submissions, with answers and topic tags."""


class PersistenceSink(Protocol):
    def save(self, user_id: str, scored_topics: Sequence[ScoredTopic],
             weakpoints: Sequence[Weakpoint]):
        """Store a complete pass and reconcile weak points with earlier runs."""


@dataclass
class PipelineResult:
    """Outcome of one user's pass. `error` is set when no fresh scores exist."""
    user_id: str
    scored_topics: List[ScoredTopic] = field(default_factory=list)
    weakpoints: List[Weakpoint] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScoringPipeline:
    """Wires providers, strategies and the sink together."""

    def __init__(
        self,
        topics: TopicGraphProvider,
        submissions: SubmissionProvider,
        sink: PersistenceSink,
        scoring: Optional[ScoringStrategy] = None,
        detector: Optional[WeakpointDetectorStrategy] = None,
        datasource: Optional[AnyDataSource] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = settings or Settings()
        self.topics = topics
        self.submissions = submissions
        self.sink = sink
        self.scoring = scoring or build_scoring_strategy(settings)
        self.detector = detector or build_weakpoint_detector(settings)
        self.datasource = datasource
        self.max_workers = max(1, settings.max_workers)
        self.sleep = sleep

    @property
    def fetch_config(self) -> DataSourceConfig:
        return self.datasource.config if self.datasource else DataSourceConfig(retry_attempts=0)

    # ==================== Single User ====================

    def run_user(self, user_id: str) -> PipelineResult:
        """
        Score, detect and persist for one user.

        Errors are caught and reported on the result; nothing partial is stored.
        """
        try:
            scored, weakpoints = self._compute(user_id)
        except Exception as e:
            return self._failed(user_id, e)
        return self._persist(user_id, scored, weakpoints)

    def _compute(self, user_id: str):
        if self.datasource is not None and not self.datasource.is_available:
            raise UpstreamUnavailable(
                f"Data source {self.datasource.id} is {self.datasource.status.value}"
            )

        config = self.fetch_config
        topics = fetch_with_retries(
            lambda: self.topics.get_topics(user_id), config,
            sleep=self.sleep, label=f"topics({user_id})",
        )
        submissions = fetch_with_retries(
            lambda: self.submissions.get_submissions(user_id), config,
            sleep=self.sleep, label=f"submissions({user_id})",
        )

        scored = self.scoring.calculate_score(list(topics), list(submissions), user_id=user_id)
        weakpoints = self.detector.detect_weakpoints(scored)
        return scored, weakpoints

    def _persist(self, user_id: str, scored, weakpoints) -> PipelineResult:
        try:
            self.sink.save(user_id, scored, weakpoints)
        except Exception as e:
            return self._failed(user_id, e)

        logger.bind(user_id=user_id).info(
            f"Scored {len(scored)} topics, {len(weakpoints)} weak points for {user_id}"
        )
        return PipelineResult(user_id=user_id, scored_topics=scored, weakpoints=weakpoints)

    @staticmethod
    def _failed(user_id: str, error: Exception) -> PipelineResult:
        log = logger.bind(user_id=user_id)
        if isinstance(error, ElevioError):
            log.warning(f"Scoring pass aborted for {user_id}: {type(error).__name__}: {error}")
        else:
            log.opt(exception=error).error(f"Scoring pass failed for {user_id}")
        return PipelineResult(user_id=user_id, error=f"{type(error).__name__}: {error}")

    # ==================== Many Users ====================

    def run_all(self, user_ids: Iterable[str], timeout: Optional[float] = None) -> Dict[str, PipelineResult]:
        """
        Run independent passes in parallel.

        Passes still running `timeout` seconds after the start (default: the
        data source's timeout) are reported as failed and their results dropped.
        """
        user_ids = list(dict.fromkeys(user_ids))
        if timeout is None:
            timeout = self.fetch_config.timeout_seconds
        deadline = time.monotonic() + timeout if timeout is not None else None

        results: Dict[str, PipelineResult] = {}
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                user_id: executor.submit(self._compute, user_id)
                for user_id in user_ids
            }
            for user_id, future in futures.items():
                remaining = None
                if deadline is not None:
                    remaining = max(0.0, deadline - time.monotonic())
                try:
                    scored, weakpoints = future.result(timeout=remaining)
                except FutureTimeout:
                    future.cancel()
                    logger.bind(user_id=user_id).warning(
                        f"Scoring pass for {user_id} timed out after {timeout}s, discarded"
                    )
                    results[user_id] = PipelineResult(
                        user_id=user_id, error=f"Timeout after {timeout}s"
                    )
                except Exception as e:
                    results[user_id] = self._failed(user_id, e)
                else:
                    results[user_id] = self._persist(user_id, scored, weakpoints)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        failed = sum(1 for r in results.values() if not r.ok)
        logger.info(f"Pipeline finished: {len(results) - failed} ok, {failed} failed")
        return results
