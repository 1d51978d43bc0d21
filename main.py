#!/usr/bin/env python3
"""
PC Solver: perfect clear search for falling-block puzzles
Main entry point and command-line interface.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pc_solver.core.board import Board
from pc_solver.core.config import BagType, SolverConfig, moves_from_names
from pc_solver.core.exceptions import SolverError
from pc_solver.core.finesse import FinesseEngine
from pc_solver.core.game_state import GameState
from pc_solver.core.kicks import KICK_TABLES, get_kick_table
from pc_solver.core.pieces import Piece, PieceType, parse_piece
from pc_solver.ai.solver import PerfectClearSolver, SolveResult
from pc_solver.ai.tree import Draw, Stash


def parse_board(rows: Optional[str]) -> Board:
    """Rows separated by '/', top row first, e.g. '####...###/####...###'."""
    if not rows:
        return Board.empty()
    return Board.from_rows(rows.split('/'))


def parse_queue(text: Optional[str]) -> List[Optional[PieceType]]:
    return [parse_piece(letter) for letter in (text or '')]


def build_state(args) -> GameState:
    queue = parse_queue(args.queue)
    piece = None
    if args.current:
        piece = Piece.spawn(PieceType.from_letter(args.current))
    history = tuple(PieceType.from_letter(letter) for letter in (args.history or ''))
    return GameState(
        board=parse_board(args.board),
        piece=piece,
        hold=parse_piece(args.hold),
        queue=tuple(queue),
        history=history,
    )


def build_config(args) -> SolverConfig:
    data = {
        'bag_type': args.bag,
        'kick_table': args.kicks,
        'hold_enabled': not args.no_hold,
        'max_depth': args.depth,
        'min_probability': args.min_probability,
        'pc_height': args.height,
        'satisfaction_threshold': args.satisfied_at,
        'time_limit': args.time_limit,
    }
    if args.moves:
        data['moves'] = [name for name in args.moves.split(',') if name]
    return SolverConfig.from_dict(data)


def print_result(result: SolveResult):
    print("=" * 50)
    if result.cleared:
        print(f"✓ Perfect clear in {len(result.placements)} pieces, probability {result.probability:.4f}")
    else:
        reason = result.failure_reason.value if result.failure_reason else "no branches"
        print(f"✗ No perfect clear within bounds ({reason})")
    print(f"Best-play clear probability: {result.clear_probability:.4f}")
    if result.cancelled:
        print("Search stopped early")
    print("=" * 50)

    for step in result.steps:
        if isinstance(step, Draw):
            note = f" (assumed, p={step.probability:.3f})" if step.assumed else ""
            print(f"draw  {step.piece_type.name}{note}")
        elif isinstance(step, Stash):
            print(f"hold  {step.piece_type.name}")
        else:
            position = step.piece.position
            print(f"place {step.piece.piece_type.name} at ({position.x}, {position.y}, "
                  f"{position.rotation.name}): {' '.join(a.value for a in step.actions)}")

    print("\nResulting board:")
    print(result.state.board.render(rows=max(result.state.board.height(), 1)))
    print(f"\nLeaves: {result.cleared_leaves} cleared, {result.failed_leaves} failed; "
          f"{result.nodes_expanded} nodes in {result.elapsed:.3f}s")


def solve_command(args) -> int:
    state = build_state(args)
    config = build_config(args)
    result = PerfectClearSolver(config).solve(state)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)
    return 0 if result.cleared else 1


def placements_command(args) -> int:
    board = parse_board(args.board)
    kind = PieceType.from_letter(args.piece)
    moves = moves_from_names(args.moves.split(',')) if args.moves else SolverConfig().moves
    engine = FinesseEngine(get_kick_table(args.kicks), moves)
    graph = engine.search(board, Piece.spawn(kind))

    if not graph.reachable:
        print(f"✗ {kind.name} cannot spawn on this board")
        return 1

    positions = graph.distinct_placements() if args.distinct else graph.placements()
    print(f"{kind.name}: {len(graph)} reachable states, {len(positions)} placements")
    for position in positions:
        actions = graph.path_to(position)
        print(f"({position.x:>2}, {position.y:>2}, {position.rotation.name:<5}) "
              f"{len(actions):>2}: {' '.join(a.value for a in actions)}")
    return 0


def add_state_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('--board', default='', help="Board rows, top first, separated by '/'")
    parser.add_argument('--kicks', default='srs', choices=sorted(KICK_TABLES), help='Kick table')
    parser.add_argument('--moves', default='', help='Comma separated move set (default: all)')


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="PC Solver: perfect clear search for falling-block puzzles")
    parser.add_argument('-v', '--verbose', action='count', default=0, help='More logging (-vv for debug)')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Solve command
    solve_parser = subparsers.add_parser('solve', help='Search for the most likely perfect clear')
    add_state_arguments(solve_parser)
    solve_parser.add_argument('--current', default='', help='Active piece letter')
    solve_parser.add_argument('--queue', default='', help="Queue letters, '?' for unknown pieces")
    solve_parser.add_argument('--hold', default='', help='Held piece letter')
    solve_parser.add_argument('--history', default='', help='Recently dealt pieces, oldest first')
    solve_parser.add_argument('--bag', default=BagType.SEVEN_BAG.value,
                              choices=[b.value for b in BagType], help='Randomizer')
    solve_parser.add_argument('--no-hold', action='store_true', help='Disable hold')
    solve_parser.add_argument('--depth', type=int, default=4, help='Maximum pieces per branch')
    solve_parser.add_argument('--height', type=int, default=4, help='Perfect clear height')
    solve_parser.add_argument('--min-probability', type=float, default=0.0, help='Branch probability floor')
    solve_parser.add_argument('--satisfied-at', type=float, default=None,
                              help='Stop at the first clear at least this likely')
    solve_parser.add_argument('--time-limit', type=float, default=None, help='Seconds before stopping')
    solve_parser.add_argument('--json', action='store_true', help='Print the result as JSON')

    # Placements command
    placements_parser = subparsers.add_parser('placements', help='List reachable placements for a piece')
    add_state_arguments(placements_parser)
    placements_parser.add_argument('piece', help='Piece letter')
    placements_parser.add_argument('--distinct', action='store_true', help='Merge placements covering the same cells')

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == 'solve':
            return solve_command(args)
        elif args.command == 'placements':
            return placements_command(args)
    except SolverError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    parser.print_help()
    print("\nFor a quick example, run: python main.py solve --board '#######.../#######.../#######.##/#######.##' --history TSZJL")
    return 0


if __name__ == "__main__":
    sys.exit(main())
