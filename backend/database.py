import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from dataset import Dataset
from errors import NotFoundError


@dataclass(frozen=True)
class StoredDataset:
    id: str
    name: Optional[str]
    dataset: Dataset
    created_at: datetime


class DatasetStore:
    """In-memory dataset store keyed by an opaque file id.

    Datasets are immutable, so a stored instance is handed out to concurrent
    requests as-is; the lock only guards the index itself.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, StoredDataset] = {}

    def save(self, dataset: Dataset, name: Optional[str] = None) -> str:
        """Insert a dataset with a creation timestamp and return its id."""
        file_id = str(uuid.uuid4())
        item = StoredDataset(
            id=file_id, name=name, dataset=dataset, created_at=datetime.now(timezone.utc)
        )
        with self._lock:
            self._items[file_id] = item
        return file_id

    def get(self, file_id: str) -> Dataset:
        with self._lock:
            item = self._items.get(file_id)
        if item is None:
            raise NotFoundError(
                "Dataset not found. The file may have expired or was not uploaded.",
                context={"fileId": file_id},
            )
        return item.dataset

    def list(self, limit: int = 50) -> List[StoredDataset]:
        """Stored datasets, newest first."""
        with self._lock:
            items = list(self._items.values())
        items.sort(key=lambda i: i.created_at, reverse=True)
        return items[:limit]


db = DatasetStore()
