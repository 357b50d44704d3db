"""Open-addressing hash table keyed by strings or integers."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Union

Key = Union[str, int]

_INITIAL_CAPACITY = 16
_MASK64 = (1 << 64) - 1

FNV_OFFSET = 14695981039346656037
FNV_PRIME = 1099511628211

# Marks a slot whose entry was removed; probing continues past it.
_TOMBSTONE = object()


def fnv1a(text: str) -> int:
    """Return the 64-bit FNV-1a hash of the UTF-8 bytes of ``text``."""
    value = FNV_OFFSET
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV_PRIME) & _MASK64
    return value


def mix64(value: int) -> int:
    """Return the 64-bit finaliser hash of an integer (taken modulo 2**64)."""
    x = value & _MASK64
    x = ((x ^ (x >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    x = ((x ^ (x >> 27)) * 0x94D049BB133111EB) & _MASK64
    return x ^ (x >> 31)


def _check_key(key: Any) -> None:
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        raise TypeError(f"hash table keys must be str or int, not {type(key).__name__}")


def _hash_key(key: Key) -> int:
    return fnv1a(key) if isinstance(key, str) else mix64(key)


def _same_key(a: Key, b: Key) -> bool:
    return isinstance(a, str) is isinstance(b, str) and a == b


def _find_slot(slots: list, key: Key) -> int:
    """Index of the entry holding ``key`` or of the slot where it belongs."""
    capacity = len(slots)
    index = _hash_key(key) & (capacity - 1)
    first_tombstone = None
    for _ in range(capacity):
        entry = slots[index]
        if entry is None:
            return first_tombstone if first_tombstone is not None else index
        if entry is _TOMBSTONE:
            if first_tombstone is None:
                first_tombstone = index
        elif _same_key(entry[0], key):
            return index
        index = (index + 1) % capacity
    # Every slot is live or a tombstone; the load limit guarantees a tombstone.
    assert first_tombstone is not None
    return first_tombstone


class HashTable:
    """A linear-probing hash table that grows when half full.

    Values may be anything except ``None``, which ``get`` uses to report a
    missing key. Do not set or remove entries while iterating.
    """

    def __init__(self) -> None:
        self._slots: list = [None] * _INITIAL_CAPACITY
        self._length = 0

    def _expand(self) -> None:
        new_slots: list = [None] * (len(self._slots) * 2)
        for entry in self._slots:
            if entry is None or entry is _TOMBSTONE:
                continue
            new_slots[_find_slot(new_slots, entry[0])] = entry
        self._slots = new_slots

    def _live_entry(self, key: Key):
        _check_key(key)
        entry = self._slots[_find_slot(self._slots, key)]
        if entry is None or entry is _TOMBSTONE:
            return None
        return entry

    def get(self, key: Key) -> Any:
        """Return the value stored under ``key``, or ``None`` if absent."""
        entry = self._live_entry(key)
        return None if entry is None else entry[1]

    def set(self, key: Key, value: Any) -> Key:
        """Store ``value`` under ``key`` and return the stored key."""
        _check_key(key)
        if value is None:
            raise ValueError("hash table values must not be None")
        if self._length >= len(self._slots) // 2:
            self._expand()
        index = _find_slot(self._slots, key)
        entry = self._slots[index]
        if entry is not None and entry is not _TOMBSTONE:
            stored_key = entry[0]
            self._slots[index] = (stored_key, value)
            return stored_key
        self._slots[index] = (key, value)
        self._length += 1
        return key

    def remove(self, key: Key) -> Any:
        """Remove ``key`` and return its old value, or ``None`` if absent."""
        _check_key(key)
        index = _find_slot(self._slots, key)
        entry = self._slots[index]
        if entry is None or entry is _TOMBSTONE:
            return None
        self._slots[index] = _TOMBSTONE
        self._length -= 1
        return entry[1]

    def __len__(self) -> int:
        return self._length

    def __contains__(self, key: object) -> bool:
        if isinstance(key, bool) or not isinstance(key, (str, int)):
            return False
        return self._live_entry(key) is not None

    def __iter__(self) -> Iterator[Key]:
        for key, _ in self.items():
            yield key

    def items(self) -> Iterator[tuple[Key, Any]]:
        """Yield ``(key, value)`` pairs in slot order."""
        for entry in self._slots:
            if entry is not None and entry is not _TOMBSTONE:
                yield entry

    def __repr__(self) -> str:
        return f"HashTable({dict(self.items())!r})"