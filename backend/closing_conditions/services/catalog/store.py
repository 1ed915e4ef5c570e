"""Immutable catalog snapshots and the store that swaps them on reload."""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from closing_conditions.core.enums import ALL_LOAN_TYPES, STAGE_ORDER, LoanType, Stage
from closing_conditions.core.exceptions import CatalogNotLoadedError
from closing_conditions.models.domain.condition import Condition
from closing_conditions.services.catalog.loader import CatalogLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogStats:
    """Condition counts across the catalog's classification columns."""

    total: int
    by_stage: Dict[str, int]
    by_type: Dict[str, int]
    by_class: Dict[str, int]
    by_loan_type: Dict[str, int]


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    One fully loaded, immutable version of the catalog.

    Readers take a snapshot reference once per request; a reload never
    mutates an existing snapshot.

    Attributes:
        version: Increases by one with every successful load
        conditions: Conditions in catalog file order
        source: Where the conditions were loaded from
        loaded_at: When the load completed
    """

    version: int
    conditions: Tuple[Condition, ...]
    source: str
    loaded_at: datetime
    _index: Dict[str, Condition] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "_index", {condition.code.upper(): condition for condition in self.conditions}
        )

    def __len__(self) -> int:
        return len(self.conditions)

    def get(self, code: str) -> Optional[Condition]:
        """Look up a condition by code, ignoring case."""
        return self._index.get((code or "").strip().upper())

    def search(self, query: str) -> List[Condition]:
        """Conditions whose code, name, description, or rule text contains the query."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [
            condition
            for condition in self.conditions
            if any(
                needle in (text or "").lower()
                for text in (
                    condition.code,
                    condition.name,
                    condition.description_template,
                    condition.rule_text,
                )
            )
        ]

    def by_stage(self, stage: Stage) -> List[Condition]:
        return [c for c in self.conditions if c.stage == stage]

    def by_type(self, condition_type: str) -> List[Condition]:
        return [c for c in self.conditions if c.condition_type == condition_type]

    def by_class(self, class_tag: str) -> List[Condition]:
        return [c for c in self.conditions if c.class_tag == class_tag]

    def by_loan_type(self, loan_type: LoanType) -> List[Condition]:
        return [c for c in self.conditions if c.loan_type_support.supports(loan_type)]

    def stats(self) -> CatalogStats:
        stages = Counter(c.stage for c in self.conditions)
        loan_types = Counter(t for c in self.conditions for t in c.loan_type_support.types)
        return CatalogStats(
            total=len(self.conditions),
            by_stage={stage.value: stages.get(stage, 0) for stage in STAGE_ORDER},
            by_type=dict(Counter(c.condition_type for c in self.conditions if c.condition_type)),
            by_class=dict(Counter(c.class_tag for c in self.conditions if c.class_tag)),
            by_loan_type={t.value: loan_types.get(t, 0) for t in ALL_LOAN_TYPES},
        )


class CatalogStore:
    """
    Holds the current catalog snapshot.

    Loads build the complete new snapshot before swapping it in under a
    writer lock, so a failed load leaves the previous snapshot current and
    readers never see a partial catalog.
    """

    def __init__(self):
        self._snapshot: Optional[CatalogSnapshot] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        """
        The current snapshot.

        Raises:
            CatalogNotLoadedError: If no load has succeeded yet
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogNotLoadedError("Condition catalog has not been loaded")
        return snapshot

    def load(self, path: Union[str, Path]) -> CatalogSnapshot:
        """
        Load the catalog from a CSV file and make it current.

        Raises:
            CatalogLoadError: If the file cannot be loaded; the previous
                snapshot stays current
        """
        conditions = CatalogLoader(path).load()
        return self.replace(conditions, source=str(path))

    def replace(self, conditions: Iterable[Condition], source: str = "<memory>") -> CatalogSnapshot:
        """Make the given conditions the current catalog."""
        conditions = tuple(conditions)
        with self._lock:
            version = self._snapshot.version + 1 if self._snapshot else 1
            snapshot = CatalogSnapshot(
                version=version,
                conditions=conditions,
                source=source,
                loaded_at=datetime.now(timezone.utc),
            )
            self._snapshot = snapshot

        logger.info(f"Catalog version {version} active with {len(conditions)} conditions from {source}")
        return snapshot
