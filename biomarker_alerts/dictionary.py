"""Biomarker name/category lookup used to label alerts."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol

from .models import BiomarkerDefinition


class BiomarkerLookup(Protocol):
    """Resolve raw lab text to a dictionary entry, or ``None`` on a miss."""

    def __call__(self, raw_text: str) -> Optional[BiomarkerDefinition]:
        ...


class StaticBiomarkerDictionary:
    """In-memory dictionary matched case-insensitively on name or alias."""

    def __init__(self, definitions: Iterable[BiomarkerDefinition]) -> None:
        self._definitions = tuple(definitions)
        self._index: dict[str, BiomarkerDefinition] = {}
        for definition in self._definitions:
            for key in (definition.name, *definition.aliases):
                normalized = key.lower().strip()
                # first definition wins on duplicate names/aliases
                if normalized and normalized not in self._index:
                    self._index[normalized] = definition

    def __call__(self, raw_text: str) -> Optional[BiomarkerDefinition]:
        return self._index.get(raw_text.lower().strip())

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for definition in self._definitions:
            if definition.category:
                seen.setdefault(definition.category, None)
        return list(seen)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "StaticBiomarkerDictionary":
        definitions: list[BiomarkerDefinition] = []
        for record in records:
            name = record.get("name")
            if not name:
                logging.warning(f"Skipping biomarker dictionary entry without a name: {record!r}")
                continue
            definitions.append(
                BiomarkerDefinition(
                    name=str(name),
                    category=record.get("category"),
                    aliases=tuple(str(alias) for alias in record.get("aliases") or ()),
                )
            )
        return cls(definitions)

    @classmethod
    def from_json(cls, path: Path) -> "StaticBiomarkerDictionary":
        with path.open() as handle:
            records = json.load(handle)
        if not isinstance(records, list):
            raise ValueError(f"Biomarker dictionary must be a JSON list: {path}")
        return cls.from_records(records)
