from abc import ABC, abstractmethod
from typing import Any, Dict, List

from extraction.models import PageRecord


class DatasetStore(ABC):
    """
    Abstract interface for the append-only record sequence of a crawl session.
    Records are never updated or deleted once appended.
    """

    @abstractmethod
    def append(self, session_name: str, record: PageRecord) -> None:
        """Atomically add a record to the end of the session's sequence. Thread-safe."""
        pass

    @abstractmethod
    def read_items(self, session_name: str) -> List[Dict[str, Any]]:
        """All stored objects of a session, in append order, as plain dicts."""
        pass

    def read_all(self, session_name: str) -> List[PageRecord]:
        """All records of a session, in append order."""
        return [PageRecord.from_dict(item) for item in self.read_items(session_name)]

    def count(self, session_name: str) -> int:
        return len(self.read_items(session_name))
