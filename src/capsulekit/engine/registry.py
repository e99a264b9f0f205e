"""In-memory capsule registry with copy-on-write indexing."""

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Union

from ..capsule.loader import load_builtin_catalog, load_catalog
from ..capsule.schema import CapsuleCategory, CapsuleDefinition
from ..config import Settings
from ..errors import CapsuleNotFound, DuplicateCapsuleId, MappingWarning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    definition: CapsuleDefinition
    # Registration batch number. A catalog load shares one number, so its
    # capsules tie on insertion order and fall back to name order.
    sequence: int


def _sort_key(entry: _Entry) -> tuple[int, str, str]:
    return (entry.sequence, entry.definition.name.lower(), entry.definition.id)


class CapsuleRegistry:
    """Stores capsule definitions by id.

    Writers build a new index under a lock and swap it in with a single
    assignment, so readers always see either the old or the new catalog and
    never a partially registered definition. Readers take no lock.
    """

    def __init__(self, definitions: Optional[Iterable[CapsuleDefinition]] = None):
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._sequence = 0
        if definitions is not None:
            self.register_all(definitions)

    # -- Writes --

    def register(self, definition: CapsuleDefinition) -> list[MappingWarning]:
        """Register one capsule definition.

        Re-registering an identical definition is a no-op.

        Returns:
            Warnings for platform mappings naming unimplemented platforms

        Raises:
            DuplicateCapsuleId: The id is taken by a different definition
        """
        return self.register_all([definition])

    def register_all(self, definitions: Iterable[CapsuleDefinition]) -> list[MappingWarning]:
        """Register a batch of definitions atomically.

        Either every definition is registered or, if any id collides with a
        different definition, none is and DuplicateCapsuleId is raised.
        """
        definitions = list(definitions)
        warnings: list[MappingWarning] = []

        with self._lock:
            entries = dict(self._entries)
            sequence = self._sequence + 1
            added = 0

            for definition in definitions:
                existing = entries.get(definition.id)
                if existing is not None:
                    if existing.definition != definition:
                        logger.error(f"[REGISTRY] Duplicate capsule id: {definition.id}")
                        raise DuplicateCapsuleId(definition.id)
                    continue

                entries[definition.id] = _Entry(definition, sequence)
                warnings.extend(definition.dangling_mappings())
                added += 1

            if added:
                self._entries = entries
                self._sequence = sequence

        for warning in warnings:
            logger.warning(f"[REGISTRY] {warning.message}")
        if added:
            logger.debug(f"[REGISTRY] Registered {added} capsule(s), {len(self._entries)} total")
        return warnings

    def unregister(self, capsule_id: str) -> bool:
        """Remove a capsule. Returns False if it was not registered."""
        with self._lock:
            if capsule_id not in self._entries:
                return False
            entries = dict(self._entries)
            del entries[capsule_id]
            self._entries = entries
        logger.debug(f"[REGISTRY] Unregistered capsule: {capsule_id}")
        return True

    # -- Reads --

    def get(self, capsule_id: str) -> CapsuleDefinition:
        """Look up a capsule by id.

        Raises:
            CapsuleNotFound: No capsule is registered under this id
        """
        entry = self._entries.get(capsule_id)
        if entry is None:
            raise CapsuleNotFound(capsule_id)
        return entry.definition

    def find(self, capsule_id: str) -> Optional[CapsuleDefinition]:
        entry = self._entries.get(capsule_id)
        return entry.definition if entry else None

    def list_all(self) -> list[CapsuleDefinition]:
        return [e.definition for e in sorted(self._entries.values(), key=_sort_key)]

    def list_by_category(self, category: Union[CapsuleCategory, str]) -> list[CapsuleDefinition]:
        """Capsules in a category, in insertion order then by name."""
        try:
            category = CapsuleCategory(category)
        except ValueError:
            return []
        return [d for d in self.list_all() if d.category == category]

    def search(self, tags: Union[str, Iterable[str]]) -> list[CapsuleDefinition]:
        """Capsules carrying any of the given tags (case-insensitive)."""
        if isinstance(tags, str):
            tags = [tags]
        wanted = {t.strip().lower() for t in tags if t and t.strip()}
        if not wanted:
            return []
        return [
            d for d in self.list_all()
            if wanted.intersection(t.lower() for t in d.tags)
        ]

    def query(self, text: str) -> list[CapsuleDefinition]:
        """Free-text search over id, name, description, and tags."""
        needle = text.strip().lower()
        if not needle:
            return self.list_all()

        def matches(d: CapsuleDefinition) -> bool:
            haystack = [d.id, d.name, d.description, *d.tags]
            return any(needle in field.lower() for field in haystack)

        return [d for d in self.list_all() if matches(d)]

    def platforms_supported_by(self, capsule_id: str) -> frozenset[str]:
        """Platform keys the capsule implements. Empty for unknown ids."""
        definition = self.find(capsule_id)
        if definition is None:
            return frozenset()
        return definition.supported_platforms

    def supports_platform(self, capsule_id: str, platform: str) -> bool:
        return platform in self.platforms_supported_by(capsule_id)

    def stats(self) -> dict:
        """Catalog counts by category, tag, and platform."""
        definitions = self.list_all()
        categories = Counter(d.category.value for d in definitions)
        tags = Counter(t for d in definitions for t in d.tags)
        platforms = Counter(p for d in definitions for p in d.platforms)
        return {
            "total": len(definitions),
            "categories": dict(sorted(categories.items())),
            "tags": dict(sorted(tags.items())),
            "by_platform": dict(sorted(platforms.items())),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, capsule_id: object) -> bool:
        return capsule_id in self._entries

    def __iter__(self) -> Iterator[CapsuleDefinition]:
        return iter(self.list_all())


def build_registry(settings: Settings) -> CapsuleRegistry:
    """Build a registry from the bundled catalog and the configured catalog directory.

    Raises:
        CatalogLoadError: A catalog file is malformed
        DuplicateCapsuleId: A catalog capsule collides with a different one
    """
    registry = CapsuleRegistry()
    if settings.include_builtin:
        registry.register_all(load_builtin_catalog())
    registry.register_all(load_catalog(settings.catalog_dir))
    logger.info(f"[REGISTRY] Catalog ready with {len(registry)} capsule(s)")
    return registry
