"""
Elevio - Weak point detection from a learner's graded submissions.

Components:
    - models: Topics, submissions, scored topics and weak points
    - topic_graph: Hierarchy tree + prerequisite DAG (networkx)
    - scoring: Scoring Engine (hierarchy-weighted, recency-aware)
    - weakpoints: Weakpoint Detector (threshold + confidence, root causes)
    - strategies: Pick algorithms by name from settings
    - log: Loguru sink setup, optionally from settings
    - pipeline: Per-user passes over providers and a persistence sink
    - datasource: Connector lifecycle feeding submissions in
    - redis_store: Redis persistence sink with weak point reconciliation
"""

from .errors import (
    ComputationError,
    ConfigurationError,
    ElevioError,
    InvalidInput,
    UpstreamUnavailable,
)
from .models import (
    Answer,
    AuditRecord,
    ScoredTopic,
    Submission,
    SubmissionStatus,
    Topic,
    Weakpoint,
)
from .topic_graph import TopicGraph
from .scoring import ScoringStrategy, WeightedScoringStrategy
from .weakpoints import ThresholdWeakpointDetector, WeakpointDetectorStrategy
from .config import Settings
from .log import configure_logging, configure_logging_from_settings
from .strategies import build_scoring_strategy, build_weakpoint_detector
from .pipeline import PipelineResult, ScoringPipeline

__version__ = "0.1.0"

__all__ = [
    "Answer",
    "AuditRecord",
    "ComputationError",
    "ConfigurationError",
    "ElevioError",
    "InvalidInput",
    "PipelineResult",
    "ScoredTopic",
    "ScoringPipeline",
    "ScoringStrategy",
    "Settings",
    "Submission",
    "SubmissionStatus",
    "ThresholdWeakpointDetector",
    "Topic",
    "TopicGraph",
    "UpstreamUnavailable",
    "Weakpoint",
    "WeakpointDetectorStrategy",
    "WeightedScoringStrategy",
    "build_scoring_strategy",
    "build_weakpoint_detector",
    "configure_logging",
    "configure_logging_from_settings",
]
