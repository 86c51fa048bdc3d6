"""
Blog State Store

Persists BlogState as one JSON document per blog.
"""

import json
import logging
from pathlib import Path

from blogcrawler.core.base import BlogState, StorageError


class BlogStateStore:
    """
    JSON file store for blog state
    """

    def __init__(self, state_path: str):
        self.logger = logging.getLogger(__name__)
        self.state_path = Path(state_path)

    def path_for(self, name: str) -> Path:
        return self.state_path / f"{self._create_safe_filename(name)}.json"

    def load(self, name: str) -> BlogState:
        """Stored state of a blog, or a fresh state if none exists"""
        path = self.path_for(name)
        if not path.exists():
            return BlogState(name=name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return BlogState.from_dict(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            raise StorageError(f"Failed to load blog state from {path}: {e}")

    def save(self, state: BlogState) -> Path:
        path = self.path_for(state.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix('.json.tmp')
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to save blog state to {path}: {e}")

        self.logger.info(f"Saved blog state to {path}")
        return path

    def _create_safe_filename(self, text: str) -> str:
        """Create safe filename from text"""
        safe = "".join(c if c.isalnum() or c in '-_' else "_" for c in text)
        return safe[:100] or "blog"
