"""Fixed-capacity LRU map with a disposal hook.

The autocomplete service keeps one instance per open document, mapping
prediction ids to :class:`~.prediction.Prediction` records.  The disposal
hook runs *before* an entry leaves the map (eviction, ``delete`` or
``clear``) and is used to cancel in-flight model requests.  Hooks must be
idempotent: the same value may be disposed of after its request already
finished.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Callable, Generic, Iterator, Optional, Tuple, TypeVar

from .errors import ConfigurationError

K = TypeVar("K")
V = TypeVar("V")

DisposeCallback = Callable[[V, K], None]


class LRUCache(Generic[K, V]):
    """Insertion/refresh ordered map evicting the least recently set entry.

    Only :meth:`set` refreshes recency.  :meth:`get` and iteration are
    read-only so that scanning all live entries does not reorder them.
    """

    def __init__(self, max_size: int, dispose_callback: Optional[DisposeCallback] = None):
        if max_size <= 0:
            raise ConfigurationError("Cache size must be greater than 0")

        self._items: "OrderedDict[K, V]" = OrderedDict()
        self._max_size = max_size
        self._dispose_callback = dispose_callback

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def set(self, key: K, value: V) -> None:
        if key in self._items:
            self._items.move_to_end(key)
        elif len(self._items) >= self._max_size:
            oldest_key, oldest_value = next(iter(self._items.items()))
            self._dispose(oldest_value, oldest_key)
            del self._items[oldest_key]

        self._items[key] = value

    def delete(self, key: K) -> bool:
        """Dispose of and remove *key*; return whether it was present."""

        if key not in self._items:
            return False

        self._dispose(self._items[key], key)
        del self._items[key]
        return True

    def clear(self) -> None:
        for key, value in list(self._items.items()):
            self._dispose(value, key)
        self._items.clear()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._items.get(key, default)

    def values(self) -> list[V]:
        """Snapshot of live values, oldest first.

        A list is returned (rather than a view) so callers may delete entries
        while walking the result.
        """

        return list(self._items.values())

    def items(self) -> list[Tuple[K, V]]:
        return list(self._items.items())

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._items))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _dispose(self, value: V, key: K) -> None:
        if self._dispose_callback is not None:
            self._dispose_callback(value, key)
