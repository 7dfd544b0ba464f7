"""
Weakpoint Detector - Turns scored topics into remediation flags.

A topic is flagged when its performance is below the threshold AND the
score is confident enough to act on. Unscored topics are never flagged.

Flags whose prerequisites are also flagged are kept, but marked as
symptomatic (weak_prerequisite_ids / root_cause_id) so that remediation
can start from the root-cause topics.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set

from loguru import logger

from .errors import ComputationError, ConfigurationError, InvalidInput
from .models import AuditRecord, ScoredTopic, Weakpoint, utc_now
from .topic_graph import TopicGraph


class WeakpointDetectorStrategy(ABC):
    """Contract for anything that turns ScoredTopics into Weakpoints."""

    @abstractmethod
    def detect_weakpoints(self, scored_topics: Optional[Sequence[ScoredTopic]]) -> List[Weakpoint]:
        """Return one Weakpoint per flagged topic."""


def _new_id() -> str:
    return str(uuid.uuid4())


class ThresholdWeakpointDetector(WeakpointDetectorStrategy):
    """Score threshold + confidence floor, with prerequisite attribution."""

    def __init__(
        self,
        threshold: float = 0.6,
        min_confidence: float = 0.7,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ):
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError("threshold must be within [0, 1]")
        if not 0.0 <= min_confidence <= 1.0:
            raise ConfigurationError("min_confidence must be within [0, 1]")

        self.threshold = threshold
        self.min_confidence = min_confidence
        self.clock = clock
        self.id_factory = id_factory

    def is_weak(self, scored: ScoredTopic) -> bool:
        """The flagging policy for a single topic."""
        if scored.performance_score is None:
            return False
        return (
            scored.performance_score < self.threshold
            and scored.confidence >= self.min_confidence
        )

    def detect_weakpoints(self, scored_topics: Optional[Sequence[ScoredTopic]]) -> List[Weakpoint]:
        if scored_topics is None:
            raise InvalidInput("scored_topics must be provided (an empty list is fine)")
        if not scored_topics:
            return []

        flagged = [s for s in scored_topics if self.is_weak(s)]
        for scored in flagged:
            if not scored.user_id:
                raise ComputationError(f"Scored topic {scored.id} has no user_id")

        # Attribution never crosses learners
        by_user: Dict[str, List[ScoredTopic]] = {}
        for scored in scored_topics:
            if scored.user_id:
                by_user.setdefault(scored.user_id, []).append(scored)

        now = self.clock()
        roots: List[Weakpoint] = []
        symptoms: List[Weakpoint] = []

        for user_id in sorted(by_user):
            user_topics = by_user[user_id]
            user_flagged = [s for s in user_topics if self.is_weak(s)]
            if not user_flagged:
                continue

            graph = TopicGraph.dependency_view([s.topic for s in user_topics])
            flagged_by_id = {s.id: s for s in user_flagged}
            weak_ids = set(flagged_by_id)

            for topic_id in graph.sort_topologically(weak_ids):
                weakpoint = self._build(flagged_by_id[topic_id], graph, weak_ids, now)
                (roots if weakpoint.is_root_cause else symptoms).append(weakpoint)

        logger.debug(
            "Detected {} weak points ({} root causes) from {} scored topics",
            len(roots) + len(symptoms), len(roots), len(scored_topics),
        )
        return roots + symptoms

    def _build(self, scored: ScoredTopic, graph: TopicGraph, weak_ids: Set[str],
               now: datetime) -> Weakpoint:
        weak_prereqs = graph.weak_prerequisites(scored.id, weak_ids)
        root_cause = graph.trace_root_cause(scored.id, weak_ids)

        return Weakpoint(
            audit=AuditRecord(id=self.id_factory(), created_at=now, updated_at=now),
            user_id=scored.user_id,
            topic_id=scored.id,
            confidence=scored.confidence,
            topic=scored.topic,
            root_cause_id=root_cause if root_cause != scored.id else None,
            weak_prerequisite_ids=tuple(weak_prereqs),
        )
