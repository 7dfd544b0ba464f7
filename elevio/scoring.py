"""
Scoring Engine - Per-topic proficiency from a learner's submissions.

Features:
    - Evidence roll-up from sub-topics, decaying geometrically with depth
    - Performance: weighted mean correctness over corrected answers
    - Discipline: recency and frequency of practice, independent of correctness
    - Confidence: grows with evidence volume, shrinks as evidence ages

Recency uses an exponential half-life curve:
    recency = 0.5 ** (age_days / half_life)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from .errors import ComputationError, ConfigurationError, InvalidInput
from .models import ScoredTopic, Submission, Topic, utc_now
from .topic_graph import TopicGraph

SECONDS_PER_DAY = 86400


class ScoringStrategy(ABC):
    """Contract for anything that turns topics + submissions into ScoredTopics."""

    @abstractmethod
    def calculate_score(
        self,
        topics: Sequence[Topic],
        submissions: Optional[Sequence[Submission]],
        user_id: Optional[str] = None,
    ) -> List[ScoredTopic]:
        """
        Score every topic for one learner.

        Args:
            topics: Non-empty, consistent topic snapshot
            submissions: The learner's submissions (may be empty, not None)
            user_id: Learner id; inferred from submissions when omitted

        Returns:
            One ScoredTopic per input topic, in input order
        """


@dataclass(frozen=True)
class _Attempt:
    """One answer as seen by the engine."""
    at: datetime
    correctness: Optional[float]  # None = attempt only, no graded evidence


class WeightedScoringStrategy(ScoringStrategy):
    """
    Hierarchy-weighted scoring with recency decay.

    For a topic T and an answer tagged on a topic d levels below T:
        weight = inheritance_decay ** d

    performance = sum(w * correctness) / sum(w)   over corrected answers
    discipline  = A / (A + discipline_saturation), A = sum(w * recency) over all attempts
    confidence  = E / (E + confidence_saturation), E = sum(w * recency) over corrected answers
    """

    def __init__(
        self,
        inheritance_decay: float = 0.5,
        recency_half_life_days: float = 14.0,
        discipline_saturation: float = 3.0,
        confidence_saturation: float = 2.0,
        score_scale: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not 0.0 <= inheritance_decay <= 1.0:
            raise ConfigurationError("inheritance_decay must be within [0, 1]")
        for name, value in (
            ("recency_half_life_days", recency_half_life_days),
            ("discipline_saturation", discipline_saturation),
            ("confidence_saturation", confidence_saturation),
            ("score_scale", score_scale),
        ):
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive")

        self.inheritance_decay = inheritance_decay
        self.recency_half_life_days = recency_half_life_days
        self.discipline_saturation = discipline_saturation
        self.confidence_saturation = confidence_saturation
        self.score_scale = score_scale
        self.clock = clock

    def calculate_score(
        self,
        topics: Sequence[Topic],
        submissions: Optional[Sequence[Submission]],
        user_id: Optional[str] = None,
    ) -> List[ScoredTopic]:
        if not topics:
            raise InvalidInput("topics must be a non-empty list")
        if submissions is None:
            raise InvalidInput("submissions must be provided (use an empty list for new learners)")

        graph = TopicGraph.from_topics(topics)
        user_id = self._resolve_user(submissions, user_id)
        now = _as_utc(self.clock())

        attempts, tagged = self._collect_attempts(graph, submissions)
        partial = sorted(t.id for t in topics if not t.children_loaded)
        if partial:
            logger.warning(
                "Children of {} not loaded; scores above them cover loaded topics only",
                partial,
            )
        logger.debug(
            "Scoring {} topics for user {} from {} attempts",
            len(graph), user_id, len(attempts),
        )

        scored = []
        for topic in topics:
            evidence = self._evidence_weights(graph, topic.id, tagged)
            scored.append(self._score_topic(topic, user_id, evidence, attempts, now))
        return scored

    # ==================== Input Handling ====================

    @staticmethod
    def _resolve_user(submissions: Sequence[Submission], user_id: Optional[str]) -> Optional[str]:
        """Every submission must belong to the same learner."""
        found = {s.user_id for s in submissions}
        if user_id is not None:
            found.add(user_id)
        if len(found) > 1:
            raise InvalidInput(f"Submissions span several users: {sorted(found)}")
        return found.pop() if found else None

    def _collect_attempts(self, graph: TopicGraph, submissions: Sequence[Submission]):
        """
        Flatten submissions into attempts and index them by tagged topic.

        Returns:
            (attempts, tagged) where tagged maps topic_id -> attempt indices
        """
        attempts: List[_Attempt] = []
        tagged: Dict[str, List[int]] = {}

        for submission in submissions:
            for topic_id in submission.topic_ids:
                if topic_id not in graph:
                    raise ComputationError(
                        f"Submission {submission.id} references unknown topic {topic_id}"
                    )

            at = _as_utc(submission.submitted_at)
            for answer in submission.answers:
                tags = submission.tags_for(answer)
                for topic_id in tags:
                    if topic_id not in graph:
                        raise ComputationError(
                            f"Answer {answer.id} in submission {submission.id} "
                            f"references unknown topic {topic_id}"
                        )

                correctness = None
                if submission.is_corrected and answer.score is not None:
                    correctness = self._normalize(answer.score, answer.max_score, answer.id)

                index = len(attempts)
                attempts.append(_Attempt(at=at, correctness=correctness))
                for topic_id in set(tags):
                    tagged.setdefault(topic_id, []).append(index)

        return attempts, tagged

    def _normalize(self, score: float, max_score: Optional[float], answer_id: str) -> float:
        scale = max_score if max_score is not None else self.score_scale
        if scale <= 0:
            raise ComputationError(f"Answer {answer_id} has non-positive max_score {scale}")
        return max(0.0, min(1.0, score / scale))

    # ==================== Evidence Roll-up ====================

    def _evidence_weights(self, graph: TopicGraph, topic_id: str,
                          tagged: Dict[str, List[int]]) -> Dict[int, float]:
        """
        Attempt index -> weight for one topic's evidence set.

        An attempt tagged at several depths inside the subtree counts once,
        at its shallowest depth.
        """
        depths: Dict[int, int] = {}
        for descendant, depth in graph.get_descendants(topic_id).items():
            for index in tagged.get(descendant, ()):
                if index not in depths or depth < depths[index]:
                    depths[index] = depth

        return {
            index: self.inheritance_decay ** depth
            for index, depth in sorted(depths.items())
        }

    def _recency(self, at: datetime, now: datetime) -> float:
        age_days = max(0.0, (now - at).total_seconds() / SECONDS_PER_DAY)
        return 0.5 ** (age_days / self.recency_half_life_days)

    def _score_topic(self, topic: Topic, user_id: Optional[str], evidence: Dict[int, float],
                     attempts: List[_Attempt], now: datetime) -> ScoredTopic:
        weighted_correct = 0.0
        graded_weight = 0.0
        graded_recent = 0.0
        practice = 0.0
        evidence_count = 0

        for index, weight in evidence.items():
            attempt = attempts[index]
            if weight == 0.0:
                continue
            recency = self._recency(attempt.at, now)
            practice += weight * recency

            if attempt.correctness is None:
                continue
            evidence_count += 1
            weighted_correct += weight * attempt.correctness
            graded_weight += weight
            graded_recent += weight * recency

        performance = weighted_correct / graded_weight if graded_weight > 0 else None
        discipline = practice / (practice + self.discipline_saturation)
        confidence = graded_recent / (graded_recent + self.confidence_saturation)

        return ScoredTopic(
            topic=topic,
            user_id=user_id,
            performance_score=performance,
            discipline_score=discipline,
            confidence=confidence,
            evidence_count=evidence_count,
            last_calculated_at=now,
        )


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
