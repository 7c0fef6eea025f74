"""In-place reconciliation of ordered, uniquely-keyed collections."""

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Optional, Protocol, TypeVar


class Keyed(Protocol):
    """Element of a reconciled collection."""

    selected: bool

    @property
    def key(self) -> str: ...

    def dispose(self) -> None: ...


T = TypeVar("T", bound=Keyed)


@dataclass
class ReconcileResult(Generic[T]):
    """Outcome of a reconciliation pass."""

    elements: list[T]
    created: list[T] = field(default_factory=list)
    disposed: list[T] = field(default_factory=list)


def unique_keys(keys: Iterable[str]) -> list[str]:
    """Drop repeated keys, keeping the first occurrence."""
    seen = set()
    result = []
    for key in keys:
        if key not in seen:
            seen.add(key)
            result.append(key)
    return result


def reconcile(
    elements: list[T],
    keys: Iterable[str],
    factory: Callable[[str], T],
    select_first: bool = True,
) -> ReconcileResult[T]:
    """Update ``elements`` to follow ``keys`` while reusing unchanged elements.

    Elements whose key survives and keeps its relative order are returned as
    the same objects. Everything else is disposed or created through
    ``factory``. The selected key is carried over when it survives; otherwise
    the first element is selected if ``select_first`` is set.
    """
    new_keys = unique_keys(keys)
    wanted = set(new_keys)

    selected_key = None
    for element in elements:
        if element.selected and selected_key is None:
            selected_key = element.key
        element.selected = False

    remaining: list[T] = []
    disposed: list[T] = []
    for element in elements:
        if element.key in wanted:
            remaining.append(element)
        else:
            element.dispose()
            disposed.append(element)

    rebuilt: list[T] = []
    created: list[T] = []
    i = 0
    for key in new_keys:
        if i < len(remaining) and remaining[i].key == key:
            rebuilt.append(remaining[i])
            i += 1
        else:
            element = factory(key)
            rebuilt.append(element)
            created.append(element)

    # Moved keys were recreated above, so the skipped originals go away.
    for element in remaining[i:]:
        element.dispose()
        disposed.append(element)

    target = None
    if selected_key is not None:
        target = next((e for e in rebuilt if e.key == selected_key), None)
    if target is None and select_first and rebuilt:
        target = rebuilt[0]
    if target is not None:
        target.selected = True

    return ReconcileResult(elements=rebuilt, created=created, disposed=disposed)


class KeyedList(Generic[T]):
    """Ordered collection with at most one selected element."""

    def __init__(self, factory: Callable[[str], T], select_first: bool = True):
        self._factory = factory
        self._select_first = select_first
        self.elements: list[T] = []

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)

    def keys(self) -> list[str]:
        return [e.key for e in self.elements]

    def find(self, key: str) -> Optional[T]:
        return next((e for e in self.elements if e.key == key), None)

    def selected(self) -> Optional[T]:
        return next((e for e in self.elements if e.selected), None)

    def update(self, keys: Iterable[str]) -> ReconcileResult[T]:
        result = reconcile(self.elements, keys, self._factory, self._select_first)
        self.elements = result.elements
        return result

    def select(self, key: str) -> Optional[T]:
        """Mark the element with ``key`` as the only selected one."""
        target = self.find(key)
        if target is None:
            return None
        for element in self.elements:
            element.selected = element is target
        return target

    def clear_selection(self):
        for element in self.elements:
            element.selected = False

    def clear(self):
        """Dispose every element."""
        self.update([])
