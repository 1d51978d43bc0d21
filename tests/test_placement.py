"""
Tests for the placement search: reachability, shortest paths and back-pointers.
"""

import unittest
import numpy as np
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pc_solver.core.board import Board
from pc_solver.core.finesse import FinesseEngine
from pc_solver.core.game_state import Action, MOVEMENT_ACTIONS, apply_movement
from pc_solver.core.kicks import get_kick_table
from pc_solver.core.pieces import Orientation, Piece, PieceType, Position

NO_HALF_TURN = [a for a in MOVEMENT_ACTIONS if a != Action.ROTATE_180]


def random_board(seed: int, rows: int = 6, density: float = 0.45) -> Board:
    """Random junk in the bottom rows with the spawn area left open."""
    rng = np.random.default_rng(seed)
    grid = (rng.random((rows, Board.BOARD_WIDTH)) < density).astype(np.int8)
    return Board.from_array(grid)


def brute_force_distances(board, origin, engine):
    """Shortest action counts by repeated relaxation over every reachable state."""
    distances = {origin.position: 0}
    pieces = {origin.position: origin}
    changed = True
    while changed:
        changed = False
        for position, piece in list(pieces.items()):
            for action in engine.moves:
                successor = apply_movement(board, piece, action, engine.kick_table)
                if successor is None:
                    continue
                candidate = distances[position] + 1
                if candidate < distances.get(successor.position, float('inf')):
                    distances[successor.position] = candidate
                    pieces[successor.position] = successor
                    changed = True
    return distances


class TestPlacementSearch(unittest.TestCase):
    """Test the breadth-first placement search."""

    def setUp(self):
        self.board = Board.empty()
        self.engine = FinesseEngine(get_kick_table('srs'), MOVEMENT_ACTIONS)

    def test_every_placement_rests(self):
        piece = Piece.spawn(PieceType.T)
        graph = self.engine.search(self.board, piece)
        self.assertTrue(graph.reachable)
        self.assertEqual(graph.origin, piece.position)
        placements = graph.placements()
        self.assertTrue(placements)
        for position in placements:
            placed = Piece(PieceType.T, position)
            self.assertTrue(self.board.is_valid_position(placed))
            self.assertTrue(self.board.can_place(placed))

    def test_o_piece_placements(self):
        graph = self.engine.search(self.board, Piece.spawn(PieceType.O))
        # 9 columns, each reachable in all 4 orientations, which cover the same cells
        self.assertEqual(len(graph.placements()), 36)
        distinct = graph.distinct_placements()
        self.assertEqual(len(distinct), 9)
        self.assertEqual({p.x for p in distinct}, set(range(-1, 8)))

    def test_hard_drop_path(self):
        graph = self.engine.search(self.board, Piece.spawn(PieceType.I))
        target = Position(3, -2, Orientation.NORTH)
        self.assertEqual(graph.path_to(target), (Action.HARD_DROP,))
        path = self.engine.get_finesse_path(self.board, Piece.spawn(PieceType.I), target)
        self.assertEqual(path.total_inputs, 1)
        self.assertEqual(path.final_position, target)

    def test_hard_drop_needs_movement(self):
        resting = Piece(PieceType.T, Position(3, -1))
        graph = self.engine.search(self.board, resting)
        for entry in graph.memo.values():
            if entry.previous == resting.position:
                self.assertNotEqual(entry.action, Action.HARD_DROP)

    def test_half_turn_excluded_from_move_set(self):
        engine = FinesseEngine(get_kick_table('srs'), NO_HALF_TURN)
        piece = Piece.spawn(PieceType.T)
        graph = engine.search(self.board, piece)
        self.assertTrue(all(entry.action != Action.ROTATE_180 for entry in graph.memo.values()))
        south = piece.position.rotated_to(Orientation.SOUTH)
        self.assertEqual(graph.path_to(south), (Action.ROTATE_CW, Action.ROTATE_CW))

        with_half_turn = self.engine.search(self.board, piece)
        self.assertEqual(with_half_turn.path_to(south), (Action.ROTATE_180,))

    def test_colliding_origin_gives_empty_graph(self):
        board = Board.empty().with_filled([(4, 20)])
        graph = self.engine.search(board, Piece.spawn(PieceType.T))
        self.assertFalse(graph.reachable)
        self.assertEqual(len(graph), 0)
        self.assertEqual(graph.placements(), [])

    def test_unreachable_position(self):
        graph = self.engine.search(self.board, Piece.spawn(PieceType.T))
        with self.assertRaises(KeyError):
            graph.path_to(Position(3, -5))
        self.assertIsNone(self.engine.get_finesse_path(self.board, Piece.spawn(PieceType.T), Position(3, 5)))

    def test_backpointers_reach_origin(self):
        for seed in range(3):
            board = random_board(seed)
            for kind in (PieceType.I, PieceType.T, PieceType.S):
                graph = self.engine.search(board, Piece.spawn(kind))
                for position in graph.memo:
                    seen = set()
                    current = position
                    while graph.memo[current].previous is not None:
                        self.assertNotIn(current, seen)
                        seen.add(current)
                        current = graph.memo[current].previous
                    self.assertEqual(current, graph.origin)

    def test_paths_replay_to_their_target(self):
        board = random_board(11)
        piece = Piece.spawn(PieceType.L)
        graph = self.engine.search(board, piece)
        for position in graph.placements():
            current = piece
            for action in graph.path_to(position):
                current = apply_movement(board, current, action, self.engine.kick_table)
                self.assertIsNotNone(current)
            self.assertEqual(current.position, position)

    def test_paths_are_shortest(self):
        for seed in (3, 5):
            board = random_board(seed)
            for kind in (PieceType.T, PieceType.J):
                origin = Piece.spawn(kind)
                graph = self.engine.search(board, origin)
                distances = brute_force_distances(board, origin, self.engine)
                self.assertEqual(set(distances), set(graph.memo))
                for position in graph.memo:
                    self.assertEqual(len(graph.path_to(position)), distances[position])

    def test_discovery_order_is_by_distance(self):
        graph = self.engine.search(random_board(8), Piece.spawn(PieceType.Z))
        lengths = [len(graph.path_to(position)) for position in graph.memo]
        self.assertEqual(lengths, sorted(lengths))


if __name__ == '__main__':
    unittest.main()
