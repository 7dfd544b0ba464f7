"""
File Providers - Topic catalogs and submissions read from JSON files.

Layout:
    {topics_dir}/{area}/*.json        -> {"topics": [...]} or a single topic
    {submissions_dir}/{user_id}.json  -> {"submissions": [...]} or a list

Used with a FileImportConnector; any object with the same methods can
stand in (LMS clients, databases).
"""

import json
from pathlib import Path
from typing import List

from .errors import InvalidInput
from .models import Submission, Topic


class JsonTopicProvider:
    """Load every topic file under a directory once, serve the same snapshot."""

    def __init__(self, data_dir: str = "data/topics"):
        self.data_dir = Path(data_dir)
        self.topics: List[Topic] = []
        self._load_all_topics()

    def _load_all_topics(self):
        if not self.data_dir.exists():
            raise InvalidInput(f"Topic directory {self.data_dir} does not exist")

        for topic_file in sorted(self.data_dir.rglob("*.json")):
            with open(topic_file, 'r') as f:
                data = json.load(f)

            if "topics" in data:
                # File contains multiple topics
                self.topics.extend(Topic.from_dict(t) for t in data["topics"])
            else:
                # Single topic file
                self.topics.append(Topic.from_dict(data))

    def get_topics(self, user_id: str) -> List[Topic]:
        return list(self.topics)


class JsonSubmissionProvider:
    """One JSON file per learner. A learner without a file has no history."""

    def __init__(self, data_dir: str = "data/submissions"):
        self.data_dir = Path(data_dir)

    def get_submissions(self, user_id: str) -> List[Submission]:
        path = self.data_dir / f"{user_id}.json"
        if not path.exists():
            return []

        with open(path, 'r') as f:
            data = json.load(f)

        records = data["submissions"] if isinstance(data, dict) else data
        return [Submission.from_dict(s) for s in records]
