"""
Redis Store - Persistence sink for scored topics and weak points.

Key Structure:
    user:{user_id}:scores              -> Hash (topic_id -> ScoredTopic JSON)
    user:{user_id}:weakpoints          -> Hash (topic_id -> Weakpoint JSON)
    user:{user_id}:weakpoints:retired  -> List (Weakpoint JSON no longer flagged)
"""

import json
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import redis
from loguru import logger

from .config import Settings
from .models import ScoredTopic, Weakpoint


@dataclass(frozen=True)
class ReconcileResult:
    """Topic ids touched by a save, grouped by what happened to their weak point."""
    inserted: List[str]
    superseded: List[str]
    retired: List[str]


class RedisScoreStore:
    def __init__(self, client: Optional[redis.Redis] = None, settings: Optional[Settings] = None,
                 max_watch_retries: int = 5):
        """Connect to Redis using settings (REDIS_* environment variables by default)."""
        if client is None:
            settings = settings or Settings.from_env()
            client = redis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                decode_responses=True  # Return strings instead of bytes
            )
        self.client = client
        self.max_watch_retries = max(1, max_watch_retries)

    # ==================== Key Builders ====================

    def _scores_key(self, user_id: str) -> str:
        return f"user:{user_id}:scores"

    def _weakpoints_key(self, user_id: str) -> str:
        return f"user:{user_id}:weakpoints"

    def _retired_key(self, user_id: str) -> str:
        return f"user:{user_id}:weakpoints:retired"

    # ==================== Writing ====================

    def save(self, user_id: str, scored_topics: Sequence[ScoredTopic],
             weakpoints: Sequence[Weakpoint]) -> ReconcileResult:
        """
        Replace the user's scores and reconcile weak points with the stored set.

        - Topics flagged now but not before: inserted
        - Topics flagged before and now: superseded by the new record
        - Topics flagged before but not now: moved to the retired list

        The stored set is read under WATCH and everything is written in one
        MULTI/EXEC transaction. A concurrent save for the same user aborts the
        transaction, and the reconciliation is redone against the new state.
        """
        wp_key = self._weakpoints_key(user_id)
        scores_key = self._scores_key(user_id)
        fresh = {w.topic_id: w for w in weakpoints}

        pipe = self.client.pipeline(transaction=True)
        try:
            for attempt in range(1, self.max_watch_retries + 1):
                try:
                    pipe.watch(wp_key)
                    stored: Dict[str, str] = pipe.hgetall(wp_key)
                    result = ReconcileResult(
                        inserted=sorted(set(fresh) - set(stored)),
                        superseded=sorted(set(fresh) & set(stored)),
                        retired=sorted(set(stored) - set(fresh)),
                    )

                    pipe.multi()
                    pipe.delete(scores_key)
                    if scored_topics:
                        pipe.hset(scores_key, mapping={
                            s.id: json.dumps(s.to_dict()) for s in scored_topics
                        })

                    if result.retired:
                        pipe.rpush(self._retired_key(user_id), *[stored[t] for t in result.retired])
                        pipe.hdel(wp_key, *result.retired)

                    if fresh:
                        pipe.hset(wp_key, mapping={
                            topic_id: json.dumps(w.to_dict()) for topic_id, w in fresh.items()
                        })

                    pipe.execute()
                    break
                except redis.WatchError:
                    if attempt == self.max_watch_retries:
                        raise
                    logger.debug(f"Weak points of {user_id} changed during save, retrying ({attempt})")
        finally:
            pipe.reset()

        logger.debug(
            "Saved {} scores for {}: {} weak points inserted, {} superseded, {} retired",
            len(scored_topics), user_id,
            len(result.inserted), len(result.superseded), len(result.retired),
        )
        return result

    def delete_user(self, user_id: str):
        """Delete all stored data for a user."""
        self.client.delete(
            self._scores_key(user_id),
            self._weakpoints_key(user_id),
            self._retired_key(user_id)
        )

    # ==================== Reading ====================

    def get_scored_topics(self, user_id: str) -> Dict[str, ScoredTopic]:
        raw = self.client.hgetall(self._scores_key(user_id))
        return {tid: ScoredTopic.from_dict(json.loads(v)) for tid, v in raw.items()}

    def get_weakpoints(self, user_id: str) -> Dict[str, Weakpoint]:
        raw = self.client.hgetall(self._weakpoints_key(user_id))
        return {tid: Weakpoint.from_dict(json.loads(v)) for tid, v in raw.items()}

    def get_retired_weakpoints(self, user_id: str) -> List[Weakpoint]:
        raw = self.client.lrange(self._retired_key(user_id), 0, -1)
        return [Weakpoint.from_dict(json.loads(v)) for v in raw]
