"""Registry of trusted IdPs keyed by entity ID."""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from samlsp.core.saml.metadata import EntityDescriptor


class IdPRegistry(Mapping[str, EntityDescriptor]):
    """Read-only mapping of entity ID to IdP descriptor.

    Besides the mapping, the registry keeps a ``primary`` pointer for callers
    that only know about a single IdP. Every :meth:`add` moves the pointer to
    the entity just added, so ``primary`` is always the most recently added
    IdP and not the first one registered.
    """

    def __init__(self, primary: EntityDescriptor | None = None) -> None:
        self._entities: dict[str, EntityDescriptor] = {}
        self._primary = primary

    @property
    def primary(self) -> EntityDescriptor | None:
        """The most recently added descriptor, or the seeded one."""
        return self._primary

    def add(self, entity: EntityDescriptor) -> None:
        """Register an entity, replacing any entry with the same entity ID."""
        self._entities[entity.entity_id] = entity
        self._primary = entity

    def __getitem__(self, entity_id: str) -> EntityDescriptor:
        return self._entities[entity_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __repr__(self) -> str:
        primary = self._primary.entity_id if self._primary else None
        return f"IdPRegistry(entities={list(self._entities)!r}, primary={primary!r})"
