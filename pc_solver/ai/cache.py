"""
Memoization cache shared by the placement search and the branch expander.
Every key carries a configuration fingerprint, so entries from one
configuration never answer a lookup from another. Binding a fingerprint
only marks which entries `purge_stale` keeps.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Hashable, Optional, Tuple

from ..core.board import Board
from ..core.pieces import Piece

logger = logging.getLogger("pc_solver.cache")


class SolverCache:
    """Thread-safe LRU cache of placement graphs and expanded subtrees."""

    def __init__(self, max_placements: int = 200_000, max_branches: int = 200_000):
        self.max_placements = max_placements
        self.max_branches = max_branches
        self._lock = threading.Lock()
        self._placements: 'OrderedDict[Tuple, Any]' = OrderedDict()
        self._branches: 'OrderedDict[Tuple, Any]' = OrderedDict()
        self._fingerprint: Optional[Tuple] = None
        self.hits = 0
        self.misses = 0
        self.invalidations = 0

    @property
    def fingerprint(self) -> Optional[Tuple]:
        return self._fingerprint

    def bind(self, fingerprint: Tuple):
        """Record the current configuration. Entries from others stay until purged."""
        with self._lock:
            if fingerprint == self._fingerprint:
                return
            if self._fingerprint is not None:
                self.invalidations += 1
                logger.info("Configuration changed, %d cached entries belong to the old one",
                            len(self._placements) + len(self._branches))
            self._fingerprint = fingerprint

    def get_placements(self, board: Board, piece: Piece, fingerprint: Tuple):
        return self._get(self._placements, (board, piece, fingerprint))

    def put_placements(self, board: Board, piece: Piece, fingerprint: Tuple, graph):
        self._put(self._placements, (board, piece, fingerprint), graph, self.max_placements)

    def get_branch(self, key: Hashable, fingerprint: Tuple):
        return self._get(self._branches, (key, fingerprint))

    def put_branch(self, key: Hashable, fingerprint: Tuple, node):
        self._put(self._branches, (key, fingerprint), node, self.max_branches)

    def _get(self, store: OrderedDict, key: Tuple):
        with self._lock:
            value = store.get(key)
            if value is None:
                self.misses += 1
                return None
            store.move_to_end(key)
            self.hits += 1
            return value

    def _put(self, store: OrderedDict, key: Tuple, value, limit: int):
        with self._lock:
            store[key] = value
            store.move_to_end(key)
            while len(store) > limit:
                store.popitem(last=False)

    def purge_stale(self) -> int:
        """Drop entries stored under any fingerprint other than the bound one."""
        with self._lock:
            removed = 0
            for store in (self._placements, self._branches):
                stale = [key for key in store if key[-1] != self._fingerprint]
                for key in stale:
                    del store[key]
                removed += len(stale)
            return removed

    def reset(self):
        """Forget everything, including the bound configuration."""
        with self._lock:
            self._placements.clear()
            self._branches.clear()
            self._fingerprint = None
            self.hits = 0
            self.misses = 0
            self.invalidations = 0

    def __len__(self):
        with self._lock:
            return len(self._placements) + len(self._branches)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                'placements': len(self._placements),
                'branches': len(self._branches),
                'hits': self.hits,
                'misses': self.misses,
                'invalidations': self.invalidations,
            }
