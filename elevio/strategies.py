"""
Strategy registry - pick scoring and detection algorithms by name.

Callers choose an implementation through Settings; alternative
implementations are registered here instead of subclassing callers.
"""

from typing import Callable, Dict, Optional

from .config import Settings
from .errors import ConfigurationError
from .scoring import ScoringStrategy, WeightedScoringStrategy
from .weakpoints import ThresholdWeakpointDetector, WeakpointDetectorStrategy

ScoringFactory = Callable[[Settings], ScoringStrategy]
DetectorFactory = Callable[[Settings], WeakpointDetectorStrategy]


def _weighted(settings: Settings) -> ScoringStrategy:
    return WeightedScoringStrategy(
        inheritance_decay=settings.inheritance_decay,
        recency_half_life_days=settings.recency_half_life_days,
        discipline_saturation=settings.discipline_saturation,
        confidence_saturation=settings.confidence_saturation,
    )


def _threshold(settings: Settings) -> WeakpointDetectorStrategy:
    return ThresholdWeakpointDetector(
        threshold=settings.weakpoint_threshold,
        min_confidence=settings.weakpoint_min_confidence,
    )


SCORING_STRATEGIES: Dict[str, ScoringFactory] = {"weighted": _weighted}
WEAKPOINT_DETECTORS: Dict[str, DetectorFactory] = {"threshold": _threshold}


def register_scoring_strategy(name: str, factory: ScoringFactory):
    SCORING_STRATEGIES[name] = factory


def register_weakpoint_detector(name: str, factory: DetectorFactory):
    WEAKPOINT_DETECTORS[name] = factory


def build_scoring_strategy(settings: Optional[Settings] = None) -> ScoringStrategy:
    settings = settings or Settings()
    factory = SCORING_STRATEGIES.get(settings.scoring_strategy)
    if factory is None:
        raise ConfigurationError(
            f"Unknown scoring strategy {settings.scoring_strategy!r}; "
            f"available: {sorted(SCORING_STRATEGIES)}"
        )
    return factory(settings)


def build_weakpoint_detector(settings: Optional[Settings] = None) -> WeakpointDetectorStrategy:
    settings = settings or Settings()
    factory = WEAKPOINT_DETECTORS.get(settings.weakpoint_strategy)
    if factory is None:
        raise ConfigurationError(
            f"Unknown weak point strategy {settings.weakpoint_strategy!r}; "
            f"available: {sorted(WEAKPOINT_DETECTORS)}"
        )
    return factory(settings)
