"""Shared builders, a fixed clock and in-memory collaborators."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from elevio.models import (
    Answer,
    AuditRecord,
    ScoredTopic,
    Submission,
    SubmissionStatus,
    Topic,
    Weakpoint,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock():
    return NOW


def make_topic(topic_id: str, parent_id: Optional[str] = None,
               deps: Sequence[str] = (), name: Optional[str] = None) -> Topic:
    return Topic(
        audit=AuditRecord(topic_id),
        name=name or topic_id,
        parent_id=parent_id,
        dependency_ids=tuple(deps),
    )


def make_submission(answers: Sequence[tuple], user_id: str = "u1",
                    status: SubmissionStatus = SubmissionStatus.CORRECTED,
                    days_ago: float = 0, sub_id: Optional[str] = None,
                    topic_ids: Sequence[str] = ()) -> Submission:
    """answers: (topic_ids, score) pairs; score None for ungraded."""
    sub_id = sub_id or f"s-{user_id}-{len(answers)}-{days_ago}-{status.value}"
    return Submission(
        audit=AuditRecord(sub_id),
        user_id=user_id,
        submitted_at=NOW - timedelta(days=days_ago),
        status=status,
        answers=tuple(
            Answer(
                audit=AuditRecord(f"{sub_id}-a{i}"),
                question_id=f"q{i}",
                answer_content="...",
                score=score,
                topic_ids=tuple(tags),
            )
            for i, (tags, score) in enumerate(answers)
        ),
        topic_ids=tuple(topic_ids),
    )


def make_scored(topic_id: str, performance: Optional[float], confidence: float,
                user_id: Optional[str] = "u1", deps: Sequence[str] = (),
                parent_id: Optional[str] = None) -> ScoredTopic:
    return ScoredTopic(
        topic=make_topic(topic_id, parent_id=parent_id, deps=deps),
        user_id=user_id,
        performance_score=performance,
        discipline_score=0.5,
        confidence=confidence,
        evidence_count=0 if performance is None else 5,
        last_calculated_at=NOW,
    )


class InMemoryTopics:
    def __init__(self, topics: List[Topic]):
        self.topics = topics

    def get_topics(self, user_id: str) -> List[Topic]:
        return list(self.topics)


class InMemorySubmissions:
    def __init__(self, by_user: Dict[str, List[Submission]]):
        self.by_user = by_user

    def get_submissions(self, user_id: str) -> List[Submission]:
        return list(self.by_user.get(user_id, []))


class InMemorySink:
    def __init__(self):
        self.saved: Dict[str, tuple] = {}

    def save(self, user_id: str, scored_topics: Sequence[ScoredTopic],
             weakpoints: Sequence[Weakpoint]):
        self.saved[user_id] = (list(scored_topics), list(weakpoints))


@pytest.fixture
def chain_topics():
    """A <- B (B is a child of A and depends on it)."""
    return [make_topic("A"), make_topic("B", parent_id="A", deps=["A"])]


@pytest.fixture
def sink():
    return InMemorySink()
