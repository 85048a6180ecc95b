from __future__ import annotations

from typing import Iterable

from .naming import capitalize

# Field-name suffixes whose records have the same shape everywhere the
# platform uses them; each collapses onto one catalog-wide type.
SHARED_SUFFIXES: tuple[tuple[str, str], ...] = (
    ("gressrule", "Rule"),
    ("nic", "Nic"),
    ("tags", "Tags"),
)


class TypeRegistry:
    """Canonical response type names handed out during one generator run."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._names: set[str] = set(reserved)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def reserve(self, name: str) -> bool:
        """Claim ``name``; returns False when it was already taken."""
        if name in self._names:
            return False
        self._names.add(name)
        return True

    def unique_type_name(self, prefix: str, name: str) -> tuple[str, bool]:
        """Return ``(type_name, create)`` for the record behind field ``name``.

        ``create`` is True when the caller owns the new type and must emit it.
        Shared shapes ignore ``prefix`` and are created once; any other
        collision retries with an ``Internal`` suffix until the name is free.
        """
        for suffix, shared in SHARED_SUFFIXES:
            if name.endswith(suffix):
                return shared, self.reserve(shared)

        while True:
            type_name = prefix + capitalize(name)
            if self.reserve(type_name):
                return type_name, True
            name += "Internal"
