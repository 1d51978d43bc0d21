"""
Tests for branch expansion, decision selection and the solver entry point.
"""

import threading
import unittest
import sys
import os
from concurrent.futures import ThreadPoolExecutor

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pc_solver.core.board import Board
from pc_solver.core.config import BagType, SolverConfig
from pc_solver.core.game_state import Action, GameState
from pc_solver.core.kicks import get_kick_table
from pc_solver.core.pieces import Piece, PieceType
from pc_solver.ai.cache import SolverCache
from pc_solver.ai.search import can_clear_within
from pc_solver.ai.selector import DecisionSelector
from pc_solver.ai.solver import PerfectClearSolver
from pc_solver.ai.tree import (
    ChanceNode, Cleared, DecisionNode, DecisionTree, Draw, Failed, FailureReason, Leaf, Outcome,
    Placement, Stash,
)

# Column 7 is open on all four rows and columns 8-9 on the top two:
# a vertical I and an O finish it in either order
WELL_ROWS = [
    "#######...",
    "#######...",
    "#######.##",
    "#######.##",
]
SEVEN_BAG_HISTORY = (PieceType.T, PieceType.S, PieceType.Z, PieceType.J, PieceType.L)


def replay(root: GameState, steps, config: SolverConfig) -> GameState:
    """Play a solution's steps from the root with the public reducers."""
    kick_table = get_kick_table(config.kick_table)
    state = root
    for step in steps:
        if isinstance(step, Draw):
            state = state.with_drawn(step.piece_type, step.probability)
        elif isinstance(step, Stash):
            state = state.with_hold()
        else:
            for action in step.actions:
                if action == Action.HOLD:
                    state = state.with_hold()
                else:
                    state = state.apply(action, kick_table)
    return state


class TestSearchBounds(unittest.TestCase):
    """Test the perfect clear pruning rule."""

    def test_can_clear_within(self):
        board = Board.from_rows(WELL_ROWS)
        self.assertEqual(board.cell_count(), 32)
        self.assertFalse(can_clear_within(board, 1))
        self.assertTrue(can_clear_within(board, 2))
        self.assertFalse(can_clear_within(Board.empty(), 0))
        self.assertFalse(can_clear_within(Board.from_rows(["####......"]), 1))
        self.assertTrue(can_clear_within(Board.from_rows(["####......"]), 4))


class TestDecisionTree(unittest.TestCase):
    """Test tree walking, expectimax and selection."""

    def setUp(self):
        self.state = GameState()
        self.placement = Placement(Piece.spawn(PieceType.I), False, (Action.HARD_DROP, Action.PLACE))

    def test_clear_probability(self):
        cleared = Leaf(GameState(probability=0.5))
        failed = Leaf(GameState(probability=0.5), FailureReason.NO_VALID_PLACEMENT)
        decision = DecisionNode(self.state, {self.placement: cleared})
        root = ChanceNode(self.state, {
            PieceType.I: Outcome(0.5, True, decision),
            PieceType.O: Outcome(0.5, True, failed),
        })
        tree = DecisionTree(root)
        self.assertAlmostEqual(tree.clear_probability(), 0.5)

        finals = list(tree.final_states())
        self.assertEqual(len(finals), 2)
        self.assertIsInstance(finals[0], Cleared)
        self.assertEqual(finals[0].steps, (Draw(PieceType.I, 0.5, True), self.placement))
        self.assertEqual(finals[0].actions, (Action.HARD_DROP, Action.PLACE))
        self.assertIsInstance(finals[1], Failed)
        self.assertEqual(finals[1].reason, FailureReason.NO_VALID_PLACEMENT)

    def test_tie_breaks(self):
        one = Placement(Piece.spawn(PieceType.I), False, (Action.LEFT, Action.HARD_DROP, Action.PLACE))
        other = Placement(Piece.spawn(PieceType.I), False, (Action.RIGHT, Action.HARD_DROP, Action.PLACE))
        stash = Stash(PieceType.O)
        state = GameState(probability=0.5)

        candidates = [
            Cleared(state, (other,), 0.5),
            Cleared(state, (one,), 0.5),
            Cleared(state, (stash, one, other), 0.5),
            Cleared(GameState(probability=0.25), (one,), 0.25),
        ]
        selection = DecisionSelector().select(candidates)
        self.assertEqual(selection.best.steps, (one,))
        self.assertEqual(selection.cleared_count, 4)
        self.assertFalse(selection.exhausted)

        fewer_pieces = DecisionSelector().select([candidates[2], candidates[0]])
        self.assertEqual(fewer_pieces.best.steps, (other,))

        likelier = DecisionSelector().select([Cleared(state, (one, other), 0.5),
                                              Cleared(state, (one,), 0.4999)])
        self.assertEqual(len(likelier.best.placements), 2)

    def test_exhausted_selection_reports_best_failure(self):
        failures = [
            Failed(FailureReason.DEPTH_LIMIT, self.state, (), 0.25),
            Failed(FailureReason.HEIGHT_LIMIT, self.state, (), 0.75),
        ]
        selection = DecisionSelector().select(failures)
        self.assertTrue(selection.exhausted)
        self.assertEqual(selection.best_failure.reason, FailureReason.HEIGHT_LIMIT)
        self.assertEqual(selection.failed_count, 2)


class TestPerfectClearSolver(unittest.TestCase):
    """End-to-end solve scenarios."""

    def setUp(self):
        self.config = SolverConfig(max_depth=3)
        self.well = GameState(board=Board.from_rows(WELL_ROWS), history=SEVEN_BAG_HISTORY)

    def test_i_and_o_finish_the_well(self):
        result = PerfectClearSolver(self.config).solve(self.well)
        self.assertTrue(result.cleared)
        self.assertAlmostEqual(result.probability, 0.5)
        self.assertAlmostEqual(result.clear_probability, 1.0)
        self.assertEqual({p.piece.piece_type for p in result.placements}, {PieceType.I, PieceType.O})
        self.assertTrue(result.state.board.is_empty())
        self.assertEqual(result.state.queue, ())
        self.assertIsNone(result.failure)

        draws = [step for step in result.steps if isinstance(step, Draw)]
        self.assertTrue(all(draw.assumed for draw in draws))
        final = replay(self.well, result.steps, self.config)
        self.assertTrue(final.board.is_empty())
        self.assertAlmostEqual(final.probability, result.probability)

    def test_known_queue_is_certain(self):
        state = GameState(board=Board.from_rows(WELL_ROWS), queue=(PieceType.O, PieceType.I))
        result = PerfectClearSolver(self.config).solve(state)
        self.assertTrue(result.cleared)
        self.assertAlmostEqual(result.probability, 1.0)
        self.assertEqual([p.piece.piece_type for p in result.placements], [PieceType.O, PieceType.I])
        self.assertEqual(result.actions[-1], Action.PLACE)

    def test_active_piece_and_hold(self):
        state = GameState(board=Board.from_rows(WELL_ROWS), piece=Piece.spawn(PieceType.T),
                          hold=PieceType.I, queue=(PieceType.O,))
        result = PerfectClearSolver(self.config).solve(state)
        self.assertTrue(result.cleared)
        self.assertEqual(result.actions[0], Action.HOLD)
        self.assertEqual(result.state.hold, PieceType.T)
        final = replay(state, result.steps, self.config)
        self.assertTrue(final.board.is_empty())

    def test_topped_out_board(self):
        board = Board.empty().with_filled([(3, 20), (4, 20), (5, 20), (6, 20)])
        state = GameState(board=board, queue=(PieceType.T,))
        result = PerfectClearSolver(self.config).solve(state)
        self.assertFalse(result.cleared)
        self.assertEqual(result.failure_reason, FailureReason.NO_VALID_PLACEMENT)
        self.assertEqual(result.cleared_leaves, 0)
        self.assertEqual(result.clear_probability, 0.0)

    def test_active_piece_topped_out(self):
        board = Board.empty().with_filled([(3, 20), (4, 20), (5, 20), (6, 20)])
        for hold_enabled in (False, True):
            config = SolverConfig(max_depth=3, hold_enabled=hold_enabled)
            state = GameState(board=board, piece=Piece.spawn(PieceType.T), queue=(PieceType.O,))
            result = PerfectClearSolver(config).solve(state)
            self.assertFalse(result.cleared)
            self.assertEqual(result.failure_reason, FailureReason.NO_VALID_PLACEMENT)
            self.assertEqual(result.cleared_leaves, 0)
            self.assertEqual(result.clear_probability, 0.0)

    def test_depth_limit(self):
        config = SolverConfig(max_depth=1, hold_enabled=False)
        state = GameState(queue=(PieceType.O,))
        result = PerfectClearSolver(config).solve(state)
        self.assertFalse(result.cleared)
        self.assertEqual(result.failure_reason, FailureReason.DEPTH_LIMIT)
        self.assertEqual(result.actions, ())

    def test_probability_floor(self):
        config = SolverConfig(max_depth=3, min_probability=0.75)
        result = PerfectClearSolver(config).solve(self.well)
        self.assertFalse(result.cleared)
        self.assertEqual(result.failure_reason, FailureReason.PROBABILITY_FLOOR)

    def test_cancelled_search_returns_a_result(self):
        cancel = threading.Event()
        cancel.set()
        result = PerfectClearSolver(self.config).solve(self.well, cancel_event=cancel)
        self.assertTrue(result.cancelled)
        self.assertFalse(result.cleared)
        self.assertEqual(result.failure_reason, FailureReason.CANCELLED)

    def test_satisfaction_threshold_stops_early(self):
        config = SolverConfig(max_depth=3, satisfaction_threshold=0.5)
        result = PerfectClearSolver(config).solve(self.well)
        self.assertTrue(result.cleared)
        self.assertTrue(result.cancelled)
        self.assertAlmostEqual(result.probability, 0.5)

    def test_cache_reset_matches_cold_cache(self):
        cache = SolverCache()
        solver = PerfectClearSolver(self.config, cache)
        solver.solve(self.well)

        other = SolverConfig(max_depth=3, moves=self.config.moves - {Action.ROTATE_180})
        solver.configure(other)
        cache.reset()
        warm = solver.solve(self.well)
        again = solver.solve(self.well)
        cold = PerfectClearSolver(other, SolverCache()).solve(self.well)

        for result in (warm, again):
            self.assertEqual(result.actions, cold.actions)
            self.assertEqual(result.steps, cold.steps)
            self.assertEqual(result.state, cold.state)
            self.assertAlmostEqual(result.probability, cold.probability)
            self.assertAlmostEqual(result.clear_probability, cold.clear_probability)

    def test_concurrent_solves_share_cache(self):
        cache = SolverCache()
        solver = PerfectClearSolver(self.config, cache)
        with ThreadPoolExecutor(max_workers=3) as pool:
            results = list(pool.map(lambda _: solver.solve(self.well), range(3)))
        for result in results[1:]:
            self.assertEqual(result.actions, results[0].actions)
            self.assertAlmostEqual(result.probability, results[0].probability)

    def test_configurations_share_one_cache(self):
        cache = SolverCache()
        no_half_turn = SolverConfig(max_depth=3, moves=self.config.moves - {Action.ROTATE_180})
        first = PerfectClearSolver(self.config, cache).solve(self.well)
        PerfectClearSolver(no_half_turn, cache).solve(self.well)
        again = PerfectClearSolver(self.config, cache).solve(self.well)
        self.assertEqual(again.nodes_expanded, 0)
        self.assertEqual(again.actions, first.actions)
        self.assertAlmostEqual(again.clear_probability, first.clear_probability)

    def test_random_bag_guesses_every_kind(self):
        config = SolverConfig(max_depth=2, bag_type=BagType.RANDOM, hold_enabled=False)
        result = PerfectClearSolver(config).solve(self.well)
        self.assertTrue(result.cleared)
        self.assertAlmostEqual(result.probability, 1 / 49)
        # I then O, O then I, or J then J
        self.assertAlmostEqual(result.clear_probability, 3 / 49)

    def test_result_to_dict(self):
        result = PerfectClearSolver(self.config).solve(self.well)
        data = result.to_dict()
        self.assertTrue(data['cleared'])
        self.assertEqual(data['actions'][-1], 'place')
        self.assertIn('draw', data['steps'][0])


if __name__ == '__main__':
    unittest.main()
