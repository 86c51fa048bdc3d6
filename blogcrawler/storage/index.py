"""
File System Content Index

Answers whether a canonical key has already been downloaded, either as a
file in the blog's download directory or as an entry in the blog's link
database (a JSON list kept next to the downloads).
"""

import json
import logging
import threading
from pathlib import Path
from typing import Set, Optional

from blogcrawler.core.base import ContentIndexInterface, StorageError
from blogcrawler.processors.urls import canonical_key

PARTIAL_SUFFIX = ".part"


class FileContentIndex(ContentIndexInterface):
    """
    Implementation of the content index over a download directory
    """

    def __init__(self, directory: str, index_file: str = "links.json"):
        super().__init__({'directory': directory, 'index_file': index_file})
        self.logger = logging.getLogger(__name__)
        self.directory = Path(directory)
        self.index_path = self.directory / index_file
        self._links: Set[str] = set()
        self._disk_keys: Optional[Set[str]] = None
        self._dirty = False
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        """Load the link database and list the download directory"""
        self.directory.mkdir(parents=True, exist_ok=True)
        self.load()
        self._initialized = True

    async def cleanup(self) -> None:
        """Persist pending registrations"""
        self.save()

    def load(self) -> None:
        with self._lock:
            if self.index_path.exists():
                try:
                    with open(self.index_path, 'r', encoding='utf-8') as f:
                        self._links = set(json.load(f))
                except (OSError, ValueError) as e:
                    raise StorageError(f"Failed to load link index {self.index_path}: {e}")
            self._disk_keys = self._scan_directory()
        self.logger.info(f"Loaded {len(self._links)} known links from {self.index_path}")

    def exists_on_disk(self, key: str) -> bool:
        with self._lock:
            if self._disk_keys is None:
                self._disk_keys = self._scan_directory()
            return key in self._disk_keys

    def _scan_directory(self) -> Set[str]:
        """Canonical keys of the finished files in the download directory"""
        if not self.directory.exists():
            return set()
        return {
            canonical_key(entry.name) for entry in self.directory.iterdir()
            if entry.is_file() and not entry.name.endswith(PARTIAL_SUFFIX)
        }

    def exists_in_db(self, key: str) -> bool:
        with self._lock:
            return key in self._links

    def register(self, key: str, file_name: Optional[str] = None) -> None:
        with self._lock:
            self._links.add(key)
            if file_name and self._disk_keys is not None:
                self._disk_keys.add(canonical_key(file_name))
            self._dirty = True

    def save(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            self.directory.mkdir(parents=True, exist_ok=True)
            try:
                with open(self.index_path, 'w', encoding='utf-8') as f:
                    json.dump(sorted(self._links), f, indent=2)
            except OSError as e:
                raise StorageError(f"Failed to save link index {self.index_path}: {e}")
            self._dirty = False
        self.logger.info(f"Saved {len(self._links)} links to {self.index_path}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)
