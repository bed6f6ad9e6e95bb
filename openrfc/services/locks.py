"""
Per-key mutation locks.

Two updates to the same RFC, or two submissions to the same review request,
must behave as if run one after the other. Services wrap each
read-modify-write in ``locks.hold(key)``.
"""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """
    Hands out one reentrant lock per key.

    An entry lives only while some thread holds or waits on its key, so the
    table stays as small as the set of keys currently in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._locks: dict[Hashable, list] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[threading.RLock]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield entry[0]
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
