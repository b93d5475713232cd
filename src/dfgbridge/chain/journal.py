"""
Undo journal for contract storage.

Contract state lives in journaled containers. Each write made inside a
transaction records how to reverse it, so rolling back a savepoint touches
only what that savepoint changed, however much history the chain holds.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

_MISSING = object()


class Journal:
    """Undo log shared by everything stored on one chain."""

    def __init__(self, is_active: Callable[[], bool]):
        self._is_active = is_active
        self._undo: List[Callable[[], None]] = []
        self.writes = 0

    def __len__(self) -> int:
        return len(self._undo)

    @property
    def active(self) -> bool:
        return self._is_active()

    def record(self, undo: Callable[[], None]) -> None:
        """Remember ``undo`` if a transaction is open."""
        if self._is_active():
            self._undo.append(undo)
            self.writes += 1

    def mark(self) -> int:
        return len(self._undo)

    def rollback(self, mark: int) -> None:
        """Undo every write recorded after ``mark``, newest first."""
        while len(self._undo) > mark:
            self._undo.pop()()

    def commit(self) -> None:
        self._undo.clear()

    def track(self, value: Any) -> Any:
        """Return ``value`` in a form whose mutations are journaled."""
        if isinstance(value, Tracked):
            if value._journal is not self:
                value.bind_journal(self)
            return value
        if isinstance(value, (JournaledDict, JournaledList, JournaledSet)) and value._journal is self:
            return value
        if isinstance(value, dict):
            return JournaledDict(self, value)
        if isinstance(value, list):
            return JournaledList(self, value)
        if isinstance(value, set):
            return JournaledSet(self, value)
        return value

    def set_attr(self, obj: Any, name: str, value: Any) -> None:
        """Assign ``obj.name`` and record the previous value."""
        value = self.track(value)
        old = obj.__dict__.get(name, _MISSING)
        object.__setattr__(obj, name, value)
        self.record(lambda: _reset_attr(obj, name, old))


def _reset_attr(obj: Any, name: str, old: Any) -> None:
    if old is _MISSING:
        obj.__dict__.pop(name, None)
    else:
        object.__setattr__(obj, name, old)


class Tracked:
    """Mixin for mutable records kept in contract storage.

    Unbound instances behave like plain objects. Once stored on a chain every
    attribute assignment is journaled and container attributes are wrapped.
    """

    _journal: Optional[Journal] = None

    def bind_journal(self, journal: Journal) -> "Tracked":
        object.__setattr__(self, "_journal", journal)
        for name, value in list(vars(self).items()):
            if name != "_journal":
                object.__setattr__(self, name, journal.track(value))
        return self

    def __setattr__(self, name: str, value: Any) -> None:
        if self._journal is None:
            object.__setattr__(self, name, value)
        else:
            self._journal.set_attr(self, name, value)


class JournaledDict(dict):
    """Dictionary whose writes can be undone."""

    def __init__(self, journal: Journal, data: Optional[Dict] = None):
        super().__init__()
        self._journal = journal
        for key, value in (data or {}).items():
            dict.__setitem__(self, key, journal.track(value))

    def _put(self, key: Any, value: Any) -> None:
        if value is _MISSING:
            dict.pop(self, key, None)
        else:
            dict.__setitem__(self, key, value)

    def __setitem__(self, key: Any, value: Any) -> None:
        value = self._journal.track(value)
        old = dict.get(self, key, _MISSING)
        dict.__setitem__(self, key, value)
        self._journal.record(lambda: self._put(key, old))

    def __delitem__(self, key: Any) -> None:
        old = dict.__getitem__(self, key)
        dict.__delitem__(self, key)
        self._journal.record(lambda: self._put(key, old))

    def pop(self, key: Any, *default: Any) -> Any:
        if key in self:
            value = dict.__getitem__(self, key)
            del self[key]
            return value
        if default:
            return default[0]
        raise KeyError(key)

    def popitem(self):
        if not self:
            raise KeyError("popitem(): dictionary is empty")
        key = next(reversed(self))
        return key, self.pop(key)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return dict.__getitem__(self, key)

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def clear(self) -> None:
        for key in list(self):
            del self[key]

    def __ior__(self, other: Any) -> "JournaledDict":
        self.update(other)
        return self


class JournaledList(list):
    """List whose writes can be undone; appends are undone in O(1)."""

    def __init__(self, journal: Journal, data: Iterable = ()):
        super().__init__(journal.track(value) for value in data)
        self._journal = journal

    def _rewrite(self, mutate: Callable[[], Any]) -> Any:
        before = list(self) if self._journal.active else None
        result = mutate()
        if before is not None:
            self._journal.record(lambda: list.__setitem__(self, slice(None), before))
        return result

    def append(self, value: Any) -> None:
        list.append(self, self._journal.track(value))
        self._journal.record(lambda: list.pop(self))

    def extend(self, values: Iterable) -> None:
        for value in values:
            self.append(value)

    def __iadd__(self, values: Iterable) -> "JournaledList":
        self.extend(values)
        return self

    def insert(self, index: int, value: Any) -> None:
        self._rewrite(lambda: list.insert(self, index, self._journal.track(value)))

    def pop(self, index: int = -1) -> Any:
        return self._rewrite(lambda: list.pop(self, index))

    def remove(self, value: Any) -> None:
        self._rewrite(lambda: list.remove(self, value))

    def clear(self) -> None:
        self._rewrite(lambda: list.clear(self))

    def sort(self, *args: Any, **kwargs: Any) -> None:
        self._rewrite(lambda: list.sort(self, *args, **kwargs))

    def reverse(self) -> None:
        self._rewrite(lambda: list.reverse(self))

    def __setitem__(self, index: Any, value: Any) -> None:
        if not isinstance(index, slice):
            value = self._journal.track(value)
        self._rewrite(lambda: list.__setitem__(self, index, value))

    def __delitem__(self, index: Any) -> None:
        self._rewrite(lambda: list.__delitem__(self, index))


class JournaledSet(set):
    """Set whose writes can be undone."""

    def __init__(self, journal: Journal, data: Iterable = ()):
        super().__init__(data)
        self._journal = journal

    def add(self, value: Any) -> None:
        if value not in self:
            set.add(self, value)
            self._journal.record(lambda: set.discard(self, value))

    def discard(self, value: Any) -> None:
        if value in self:
            set.discard(self, value)
            self._journal.record(lambda: set.add(self, value))

    def remove(self, value: Any) -> None:
        if value not in self:
            raise KeyError(value)
        self.discard(value)

    def pop(self) -> Any:
        if not self:
            raise KeyError("pop from an empty set")
        value = next(iter(self))
        self.discard(value)
        return value

    def clear(self) -> None:
        for value in list(self):
            self.discard(value)

    def update(self, *others: Iterable) -> None:
        for other in others:
            for value in other:
                self.add(value)

    def difference_update(self, *others: Iterable) -> None:
        for other in others:
            for value in list(other):
                self.discard(value)

    def __ior__(self, other: Iterable) -> "JournaledSet":
        self.update(other)
        return self

    def __isub__(self, other: Iterable) -> "JournaledSet":
        self.difference_update(other)
        return self


__all__ = ["Journal", "JournaledDict", "JournaledList", "JournaledSet", "Tracked"]
