"""
Immutable, category-partitioned collection of classified postings.

Every mutator returns a new JobStore, so readers always see a complete
snapshot. A posting id lives in at most one column.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from aggregator.core.models import Category, ClassifiedPosting

logger = logging.getLogger(__name__)

Column = Tuple[ClassifiedPosting, ...]


def _empty_columns() -> Mapping[Category, Column]:
    return MappingProxyType({category: () for category in Category})


@dataclass(frozen=True)
class JobStore:
    columns: Mapping[Category, Column] = field(default_factory=_empty_columns)

    def __post_init__(self):
        columns = {category: tuple(self.columns.get(category, ())) for category in Category}
        object.__setattr__(self, "columns", MappingProxyType(columns))

    def __getitem__(self, category: Category) -> Column:
        return self.columns[category]

    def __iter__(self) -> Iterator[ClassifiedPosting]:
        return iter(self.all_postings())

    def __len__(self) -> int:
        return sum(len(column) for column in self.columns.values())

    def all_postings(self) -> Column:
        """Every posting, flattened in column order."""
        return tuple(posting for category in Category for posting in self.columns[category])

    def ids(self) -> set:
        return {posting.id for posting in self.all_postings()}

    def find(self, posting_id: str) -> Optional[ClassifiedPosting]:
        for posting in self:
            if posting.id == posting_id:
                return posting
        return None

    def counts(self) -> Dict[Category, int]:
        return {category: len(self.columns[category]) for category in Category}

    # --- Mutators (each returns a new snapshot) ---

    def merge(self, classified: Iterable[ClassifiedPosting]) -> "JobStore":
        """
        Prepend new postings to their category, newest first. Ids already
        present anywhere in the store, or earlier in the same batch, are
        dropped; the stored copy always wins.
        """
        known = self.ids()
        additions: Dict[Category, List[ClassifiedPosting]] = {c: [] for c in Category}
        skipped = 0
        for posting in classified:
            if posting.id in known:
                skipped += 1
                continue
            known.add(posting.id)
            additions[posting.category].append(posting)

        if skipped:
            logger.info(f"Merge skipped {skipped} postings already in the store.")
        return JobStore(
            {
                category: tuple(additions[category]) + self.columns[category]
                for category in Category
            }
        )

    def move(self, posting_id: str, source: Category, target: Category) -> "JobStore":
        """
        Relocate one posting to the head of ``target``. User moves are
        authoritative; no score check is applied.
        """
        column = self.columns[source]
        posting = next((p for p in column if p.id == posting_id), None)
        if posting is None:
            raise KeyError(f"Posting {posting_id} not found in {source.value}")

        columns = dict(self.columns)
        columns[source] = tuple(p for p in column if p.id != posting_id)
        moved = posting.with_category(target)
        columns[target] = (moved,) + columns[target]
        return JobStore(columns)

    def delete(self, posting_id: str, category: Category) -> "JobStore":
        column = self.columns[category]
        if not any(p.id == posting_id for p in column):
            raise KeyError(f"Posting {posting_id} not found in {category.value}")
        columns = dict(self.columns)
        columns[category] = tuple(p for p in column if p.id != posting_id)
        return JobStore(columns)

    def clear(self) -> "JobStore":
        return JobStore()

    # --- Serialization ---

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            category.value: [posting.to_dict() for posting in self.columns[category]]
            for category in Category
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobStore":
        """
        Rebuild a store from its serialized form. The column a posting is
        stored under wins over its own ``category`` field; duplicate ids are
        dropped (first occurrence kept).
        """
        seen = set()
        columns: Dict[Category, List[ClassifiedPosting]] = {c: [] for c in Category}
        for category in Category:
            for raw in data.get(category.value) or []:
                posting = ClassifiedPosting.from_dict({**raw, "category": category.value})
                if posting.id in seen:
                    continue
                seen.add(posting.id)
                columns[category].append(posting)
        return cls({category: tuple(items) for category, items in columns.items()})


def merge(store: JobStore, classified: Iterable[ClassifiedPosting]) -> JobStore:
    return store.merge(classified)
