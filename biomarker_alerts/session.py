"""Session-scoped alert state: which alert ids are dismissed or acknowledged."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Set


@dataclass
class AlertSession:
    """In-memory dismissed/acknowledged id sets, never persisted.

    The owner is expected to serialize mutations; there is no locking.
    """

    dismissed: Set[str] = field(default_factory=set)
    acknowledged: Set[str] = field(default_factory=set)

    @classmethod
    def from_ids(
        cls,
        dismissed: Iterable[str] = (),
        acknowledged: Iterable[str] = (),
    ) -> "AlertSession":
        return cls(dismissed=set(dismissed), acknowledged=set(acknowledged))

    def dismiss(self, alert_id: str) -> None:
        self.dismissed.add(alert_id)

    def acknowledge(self, alert_id: str) -> None:
        self.acknowledged.add(alert_id)

    def clear_dismissed(self) -> None:
        self.dismissed.clear()

    def is_dismissed(self, alert_id: str) -> bool:
        return alert_id in self.dismissed

    def is_acknowledged(self, alert_id: str) -> bool:
        return alert_id in self.acknowledged
