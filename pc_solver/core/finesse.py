"""
Finesse engine for the perfect clear solver.
Breadth-first search over active piece states, finding every resting position
a piece can reach and the shortest input path to each of them.
"""

import logging
from collections import deque
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple
from dataclasses import dataclass

from .board import Board
from .game_state import Action, MOVEMENT_ACTIONS, apply_movement
from .kicks import KickTable
from .pieces import Piece, PieceType, Position

logger = logging.getLogger("pc_solver.finesse")


@dataclass(frozen=True)
class MemoEntry:
    """How a position was first reached: the predecessor and the action taken from it."""
    previous: Optional[Position]
    action: Optional[Action]
    is_placeable: bool


@dataclass(frozen=True)
class FinessePath:
    """Represents a complete finesse path for placing a piece."""
    actions: Tuple[Action, ...]
    final_position: Position

    @property
    def total_inputs(self) -> int:
        return len(self.actions)


class PlacementGraph:
    """
    Result of a placement search: every reachable position with a back-pointer
    to the position it was first reached from. Empty when the origin collides.
    """

    def __init__(self, piece_type: PieceType, origin: Optional[Position],
                 memo: Dict[Position, MemoEntry]):
        self.piece_type = piece_type
        self.origin = origin
        self.memo = memo

    @property
    def reachable(self) -> bool:
        return self.origin is not None

    def __len__(self):
        return len(self.memo)

    def __contains__(self, position: Position):
        return position in self.memo

    def placements(self) -> List[Position]:
        """Resting positions in discovery order (shortest path first)."""
        return [position for position, entry in self.memo.items() if entry.is_placeable]

    def distinct_placements(self) -> List[Position]:
        """
        Resting positions with distinct cell sets. When several orientations
        cover the same cells, the one reached first is kept.
        """
        seen = set()
        distinct = []
        for position in self.placements():
            cells = frozenset(Piece(self.piece_type, position).get_occupied_cells())
            if cells not in seen:
                seen.add(cells)
                distinct.append(position)
        return distinct

    def path_to(self, position: Position) -> Tuple[Action, ...]:
        """Shortest action sequence from the origin to the given position."""
        if position not in self.memo:
            raise KeyError(f"{position} is not reachable")
        actions = []
        current = position
        for _ in range(len(self.memo)):
            entry = self.memo[current]
            if entry.previous is None:
                break
            actions.append(entry.action)
            current = entry.previous
        else:
            raise RuntimeError(f"Back-pointers from {position} do not reach the origin")
        actions.reverse()
        return tuple(actions)

    def get_finesse_path(self, position: Position) -> Optional[FinessePath]:
        if position not in self.memo:
            return None
        return FinessePath(actions=self.path_to(position), final_position=position)


class FinesseEngine:
    """Engine for finding reachable placements and their input paths."""

    def __init__(self, kick_table: KickTable, moves: Iterable[Action] = MOVEMENT_ACTIONS,
                 cache=None, fingerprint: Optional[Tuple] = None):
        allowed: FrozenSet[Action] = frozenset(moves)
        self.kick_table = kick_table
        self.moves = tuple(a for a in MOVEMENT_ACTIONS if a in allowed)
        self.cache = cache
        self.fingerprint = fingerprint if fingerprint is not None else (
            kick_table.name, tuple(a.value for a in self.moves))
        self.searches = 0

    def search(self, board: Board, piece: Piece) -> PlacementGraph:
        """Explore every state reachable from the piece, using the cache when one is attached."""
        if self.cache is not None:
            graph = self.cache.get_placements(board, piece, self.fingerprint)
            if graph is not None:
                return graph

        graph = self._search(board, piece)
        if self.cache is not None:
            self.cache.put_placements(board, piece, self.fingerprint, graph)
        return graph

    def _search(self, board: Board, piece: Piece) -> PlacementGraph:
        self.searches += 1
        memo: Dict[Position, MemoEntry] = {}
        if not board.is_valid_position(piece):
            logger.debug("%s collides at its origin, nothing reachable", piece)
            return PlacementGraph(piece.piece_type, None, memo)

        memo[piece.position] = MemoEntry(None, None, board.can_place(piece))
        frontier = deque([piece])
        while frontier:
            current = frontier.popleft()
            for action, successor in self._successors(board, current):
                if successor.position in memo:
                    continue
                memo[successor.position] = MemoEntry(
                    current.position, action, board.can_place(successor))
                frontier.append(successor)

        logger.debug("Explored %d states for %s", len(memo), piece.piece_type.name)
        return PlacementGraph(piece.piece_type, piece.position, memo)

    def _successors(self, board: Board, piece: Piece) -> Iterator[Tuple[Action, Piece]]:
        for action in self.moves:
            successor = apply_movement(board, piece, action, self.kick_table)
            if successor is not None:
                yield action, successor

    def get_all_valid_placements(self, board: Board, piece: Piece) -> List[Position]:
        """Get all valid placement positions for a piece."""
        return self.search(board, piece).placements()

    def get_finesse_path(self, board: Board, piece: Piece, target_position: Position) -> Optional[FinessePath]:
        """Get the shortest input path to place a piece at the target position."""
        graph = self.search(board, piece)
        entry = graph.memo.get(target_position)
        if entry is None or not entry.is_placeable:
            return None
        return graph.get_finesse_path(target_position)
