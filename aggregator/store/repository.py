import logging
from typing import Iterable, Optional

from aggregator.core.models import Category, ClassifiedPosting
from aggregator.store.job_store import JobStore
from aggregator.store.persistence import JsonFileKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

STORE_KEY = "jobs"


class JobRepository:
    """
    Single owner of the current JobStore snapshot. Every successful mutation
    swaps in the new snapshot and saves it.
    """

    def __init__(self, backend: Optional[KeyValueStore] = None, key: str = STORE_KEY):
        self.backend = backend if backend is not None else JsonFileKeyValueStore()
        self.key = key
        self._store = self._load()

    @property
    def store(self) -> JobStore:
        return self._store

    def _load(self) -> JobStore:
        data = self.backend.get(self.key)
        if not data:
            return JobStore()
        try:
            store = JobStore.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Stored job board is unreadable, starting empty: {e}")
            return JobStore()
        logger.info(f"Loaded {len(store)} postings from storage.")
        return store

    def _commit(self, store: JobStore) -> JobStore:
        self.backend.set(self.key, store.to_dict())
        self._store = store
        return store

    def merge(self, classified: Iterable[ClassifiedPosting]) -> JobStore:
        before = len(self._store)
        store = self._commit(self._store.merge(classified))
        logger.info(f"Merged {len(store) - before} new postings.")
        return store

    def move(self, posting_id: str, source: Category, target: Category) -> JobStore:
        return self._commit(self._store.move(posting_id, source, target))

    def delete(self, posting_id: str, category: Category) -> JobStore:
        return self._commit(self._store.delete(posting_id, category))

    def clear(self) -> JobStore:
        logger.warning("Clearing the whole job board.")
        self.backend.delete(self.key)
        self._store = JobStore()
        return self._store
