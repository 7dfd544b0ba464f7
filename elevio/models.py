"""
Models - Immutable value objects flowing through the scoring core.

Entities:
    - AuditRecord: id + created/updated timestamps, embedded in every entity
    - Topic: node of the hierarchical, dependency-linked catalog
    - Submission / Answer: a learner's attempts and their graded correctness
    - ScoredTopic: a topic with performance, discipline and confidence
    - Weakpoint: a topic flagged for remediation

All models are frozen. A new scoring or detection run yields new objects;
nothing is edited in place.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


def utc_now() -> datetime:
    """Default clock for every timestamp the core produces."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# ==================== Audit ====================

@dataclass(frozen=True)
class AuditRecord:
    """Identity and bookkeeping timestamps shared by all entities."""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditRecord":
        return cls(
            id=data["id"],
            created_at=_parse(data.get("created_at")),
            updated_at=_parse(data.get("updated_at")),
        )

    @classmethod
    def of(cls, data: dict) -> "AuditRecord":
        """Audit record of an entity dict: nested `audit`, or a flat `id`."""
        if "audit" in data:
            return cls.from_dict(data["audit"])
        return cls(id=data["id"])


# ==================== Topics ====================

@dataclass(frozen=True)
class Topic:
    """
    A unit of knowledge.

    Relationships are stored by id. Use TopicGraph to resolve parent,
    children, dependencies and dependents into Topic objects.
    """
    audit: AuditRecord
    name: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    dependency_ids: Tuple[str, ...] = ()
    children_loaded: bool = True  # False when the provider sent a partial tree

    @property
    def id(self) -> str:
        return self.audit.id

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> dict:
        return {
            "audit": self.audit.to_dict(),
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "dependency_ids": list(self.dependency_ids),
            "children_loaded": self.children_loaded,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Topic":
        return cls(
            audit=AuditRecord.of(data),
            name=data["name"],
            description=data.get("description"),
            parent_id=data.get("parent_id"),
            dependency_ids=tuple(data.get("dependency_ids", ())),
            children_loaded=data.get("children_loaded", True),
        )


# ==================== Submissions ====================

class SubmissionStatus(Enum):
    """Grading state of a submission."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    CORRECTED = "corrected"


@dataclass(frozen=True)
class Answer:
    """One answered question inside a submission."""
    audit: AuditRecord
    question_id: str
    answer_content: str
    score: Optional[float] = None  # Only present once corrected
    max_score: Optional[float] = None  # Scale of `score`, if not [0, 1]
    topic_ids: Tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.audit.id

    def to_dict(self) -> dict:
        return {
            "audit": self.audit.to_dict(),
            "question_id": self.question_id,
            "answer_content": self.answer_content,
            "score": self.score,
            "max_score": self.max_score,
            "topic_ids": list(self.topic_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Answer":
        return cls(
            audit=AuditRecord.of(data),
            question_id=data["question_id"],
            answer_content=data.get("answer_content", ""),
            score=data.get("score"),
            max_score=data.get("max_score"),
            topic_ids=tuple(data.get("topic_ids", ())),
        )


@dataclass(frozen=True)
class Submission:
    """A learner's attempt, made of one or more answers."""
    audit: AuditRecord
    user_id: str
    submitted_at: datetime
    status: SubmissionStatus
    answers: Tuple[Answer, ...] = ()
    topic_ids: Tuple[str, ...] = ()
    total_score: Optional[float] = None

    @property
    def id(self) -> str:
        return self.audit.id

    @property
    def is_corrected(self) -> bool:
        return self.status is SubmissionStatus.CORRECTED

    def tags_for(self, answer: Answer) -> Tuple[str, ...]:
        """Topic ids an answer counts towards (its own, else the submission's)."""
        return answer.topic_ids or self.topic_ids

    def to_dict(self) -> dict:
        return {
            "audit": self.audit.to_dict(),
            "user_id": self.user_id,
            "submitted_at": _iso(self.submitted_at),
            "status": self.status.value,
            "answers": [a.to_dict() for a in self.answers],
            "topic_ids": list(self.topic_ids),
            "total_score": self.total_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        """Parse a submission with nested answers (ISO-8601 timestamps)."""
        return cls(
            audit=AuditRecord.of(data),
            user_id=data["user_id"],
            submitted_at=datetime.fromisoformat(data["submitted_at"]),
            status=SubmissionStatus(data["status"]),
            answers=tuple(Answer.from_dict(a) for a in data.get("answers", [])),
            topic_ids=tuple(data.get("topic_ids", ())),
            total_score=data.get("total_score"),
        )


# ==================== Scores ====================

@dataclass(frozen=True)
class ScoredTopic:
    """
    A topic scored for one learner at one point in time.

    performance_score is None when there was no corrected evidence.
    """
    topic: Topic
    user_id: Optional[str]
    performance_score: Optional[float]
    discipline_score: float
    confidence: float
    evidence_count: int
    last_calculated_at: datetime

    @property
    def id(self) -> str:
        return self.topic.id

    @property
    def name(self) -> str:
        return self.topic.name

    @property
    def parent_id(self) -> Optional[str]:
        return self.topic.parent_id

    @property
    def dependency_ids(self) -> Tuple[str, ...]:
        return self.topic.dependency_ids

    @property
    def is_scored(self) -> bool:
        return self.performance_score is not None

    @property
    def key(self) -> Tuple[Optional[str], str, datetime]:
        """Snapshot key: (user, topic, time of computation)."""
        return (self.user_id, self.topic.id, self.last_calculated_at)

    def to_dict(self) -> dict:
        return {
            "topic": self.topic.to_dict(),
            "user_id": self.user_id,
            "performance_score": self.performance_score,
            "discipline_score": self.discipline_score,
            "confidence": self.confidence,
            "evidence_count": self.evidence_count,
            "last_calculated_at": _iso(self.last_calculated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoredTopic":
        return cls(
            topic=Topic.from_dict(data["topic"]),
            user_id=data.get("user_id"),
            performance_score=data.get("performance_score"),
            discipline_score=data.get("discipline_score", 0.0),
            confidence=data.get("confidence", 0.0),
            evidence_count=data.get("evidence_count", 0),
            last_calculated_at=_parse(data["last_calculated_at"]),
        )


# ==================== Weak Points ====================

@dataclass(frozen=True)
class Weakpoint:
    """A topic the learner should work on."""
    audit: AuditRecord
    user_id: str
    topic_id: str
    confidence: float
    topic: Optional[Topic] = None
    root_cause_id: Optional[str] = None  # Earliest weak prerequisite
    weak_prerequisite_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def id(self) -> str:
        return self.audit.id

    @property
    def is_root_cause(self) -> bool:
        """True when no prerequisite of this topic is itself weak."""
        return not self.weak_prerequisite_ids

    @property
    def is_symptomatic(self) -> bool:
        return not self.is_root_cause

    def to_dict(self) -> dict:
        return {
            "audit": self.audit.to_dict(),
            "user_id": self.user_id,
            "topic_id": self.topic_id,
            "confidence": self.confidence,
            "topic": self.topic.to_dict() if self.topic else None,
            "root_cause_id": self.root_cause_id,
            "weak_prerequisite_ids": list(self.weak_prerequisite_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Weakpoint":
        topic_data: Optional[Dict] = data.get("topic")
        return cls(
            audit=AuditRecord.from_dict(data["audit"]),
            user_id=data["user_id"],
            topic_id=data["topic_id"],
            confidence=data["confidence"],
            topic=Topic.from_dict(topic_data) if topic_data else None,
            root_cause_id=data.get("root_cause_id"),
            weak_prerequisite_ids=tuple(data.get("weak_prerequisite_ids", ())),
        )
