"""
Branch expansion for the perfect clear solver.
Recursively expands a game state into a decision tree: chance nodes over the
next piece, decision nodes over reachable placements and hold, until every
branch reaches a perfect clear or a pruning bound.
"""

import logging
import threading
import time
from collections import Counter
from typing import List, Optional

from ..core.board import Board
from ..core.config import SolverConfig
from ..core.exceptions import GameOverError
from ..core.finesse import FinesseEngine
from ..core.game_state import Action, GameState
from ..core.kicks import get_kick_table
from ..core.pieces import Piece
from .cache import SolverCache
from .probability import ProbabilityModel
from .tree import (
    ChanceNode, DecisionNode, DecisionTree, FailureReason, Leaf, Node, Outcome, Placement, Stash,
)

logger = logging.getLogger("pc_solver.search")

CELLS_PER_PIECE = 4

# Failure leaves for these reasons are collapsed into their parent
PRUNED_REASONS = (FailureReason.HEIGHT_LIMIT, FailureReason.DEPTH_LIMIT)


def can_clear_within(board: Board, pieces: int) -> bool:
    """
    Whether some number of further pieces, at most `pieces`, could leave the
    board empty: the cells on the board plus four per piece must fill whole
    rows, at least as many rows as are in use now.
    """
    cells = board.cell_count()
    rows_in_use = sum(1 for y in range(board.height()) if not board.is_line_empty(y))
    for count in range(1, pieces + 1):
        total = cells + CELLS_PER_PIECE * count
        if total % Board.BOARD_WIDTH == 0 and total // Board.BOARD_WIDTH >= rows_in_use:
            return True
    return False


class BranchExpander:
    """Expands game states into decision trees under a solver configuration."""

    def __init__(self, config: SolverConfig, cache: Optional[SolverCache] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.config = config
        self.cache = cache
        self.cancel_event = cancel_event
        self.fingerprint = config.fingerprint()
        self.kick_table = get_kick_table(config.kick_table)
        self.probability_model = ProbabilityModel(config.bag_type)
        self.finesse = FinesseEngine(self.kick_table, config.ordered_moves, cache, self.fingerprint)

        self.deadline: Optional[float] = None
        self.satisfied = False
        self.cancelled = False
        self.nodes_expanded = 0

    def expand(self, state: GameState) -> DecisionTree:
        """Expand the state into a complete decision tree."""
        start = time.monotonic()
        self.deadline = start + self.config.time_limit if self.config.time_limit else None
        self.satisfied = False
        self.cancelled = False
        self.nodes_expanded = 0

        if state.piece is None:
            root = self._expand_draw(state, 0)
        else:
            root = self._expand_decision(state, 0)

        logger.info("Expanded %d nodes in %.3fs%s", self.nodes_expanded, time.monotonic() - start,
                    " (stopped early)" if self.cancelled else "")
        return DecisionTree(root, cancelled=self.cancelled, nodes_expanded=self.nodes_expanded)

    def _should_stop(self) -> bool:
        if self.cancelled:
            return True
        if self.satisfied or (self.cancel_event is not None and self.cancel_event.is_set()):
            self.cancelled = True
        elif self.deadline is not None and time.monotonic() > self.deadline:
            logger.info("Time limit of %.2fs reached", self.config.time_limit)
            self.cancelled = True
        return self.cancelled

    def _expand_draw(self, state: GameState, depth: int) -> Node:
        """Fan out over the next piece of a state with an empty active slot."""
        if self._should_stop():
            return Leaf(state, FailureReason.CANCELLED)

        known = state.next_kind
        if known is not None:
            outcomes = [(known, 1.0, False)]
        else:
            outcomes = [(kind, p, True) for kind, p in self.probability_model.outcomes(state.history)]

        node = ChanceNode(state)
        for kind, probability, assumed in outcomes:
            if assumed and state.probability * probability < self.config.min_probability:
                child: Node = Leaf(state, FailureReason.PROBABILITY_FLOOR)
            else:
                try:
                    drawn = state.with_drawn(kind, probability)
                except GameOverError:
                    child = Leaf(state, FailureReason.NO_VALID_PLACEMENT)
                else:
                    child = self._expand_decision(drawn, depth)
            node.outcomes[kind] = Outcome(probability, assumed, child)
        return node

    def _expand_decision(self, state: GameState, depth: int) -> Node:
        """Expand every choice for the active piece: each placement, and hold if allowed."""
        if self._should_stop():
            return Leaf(state, FailureReason.CANCELLED)
        if depth >= self.config.max_depth:
            return Leaf(state, FailureReason.DEPTH_LIMIT)

        key = (state, self.config.max_depth - depth, self.config.min_probability)
        if self.cache is not None:
            cached = self.cache.get_branch(key, self.fingerprint)
            if cached is not None:
                return cached

        self.nodes_expanded += 1
        node = DecisionNode(state)
        pruned: Counter = Counter()

        for placement in self._placements(state.board, state.piece, hold=False):
            self._add_option(node, placement, self._after_lock(state, placement, depth), pruned)

        if self.config.hold_enabled and not state.hold_used:
            if state.hold is None:
                stashed = state.with_hold()
                node.options[Stash(state.piece.piece_type)] = self._expand_draw(stashed, depth)
            elif state.hold != state.piece.piece_type:
                try:
                    swapped = state.with_hold()
                except GameOverError:
                    swapped = None
                if swapped is not None:
                    for placement in self._placements(swapped.board, swapped.piece, hold=True):
                        self._add_option(node, placement, self._after_lock(swapped, placement, depth), pruned)

        if node.options:
            result: Node = node
        elif pruned:
            result = Leaf(state, pruned.most_common(1)[0][0])
            logger.debug("All %d placements of %s pruned at depth %d", sum(pruned.values()),
                         state.piece.piece_type.name, depth)
        else:
            result = Leaf(state, FailureReason.NO_VALID_PLACEMENT)

        if self.cache is not None and not self.cancelled:
            self.cache.put_branch(key, self.fingerprint, result)
        return result

    @staticmethod
    def _add_option(node: DecisionNode, placement: Placement, child: Node, pruned: Counter):
        if isinstance(child, Leaf) and child.reason in PRUNED_REASONS:
            pruned[child.reason] += 1
        else:
            node.options[placement] = child

    def _placements(self, board: Board, piece: Piece, hold: bool) -> List[Placement]:
        graph = self.finesse.search(board, piece)
        prefix = (Action.HOLD,) if hold else ()
        return [
            Placement(Piece(piece.piece_type, position), hold,
                      prefix + graph.path_to(position) + (Action.PLACE,))
            for position in graph.distinct_placements()
        ]

    def _after_lock(self, state: GameState, placement: Placement, depth: int) -> Node:
        locked = state.with_piece_at(placement.piece.position).with_placed_piece()
        if locked.is_perfect_clear:
            self._record_clear(locked)
            return Leaf(locked)
        if locked.board.height() > self.config.pc_height:
            return Leaf(locked, FailureReason.HEIGHT_LIMIT)
        if not can_clear_within(locked.board, self.config.max_depth - depth - 1):
            return Leaf(locked, FailureReason.DEPTH_LIMIT)
        return self._expand_draw(locked, depth + 1)

    def _record_clear(self, state: GameState):
        threshold = self.config.satisfaction_threshold
        if threshold is not None and not self.satisfied and state.probability >= threshold:
            logger.info("Found a perfect clear with probability %.4f, stopping", state.probability)
            self.satisfied = True
