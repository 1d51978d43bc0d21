"""
Perfect clear solver: the entry point tying branch expansion, the
probability model, the cache and decision selection together.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from ..core.config import SolverConfig
from ..core.game_state import Action, GameState
from .cache import SolverCache
from .search import BranchExpander
from .selector import DecisionSelector
from .tree import Cleared, Draw, DecisionTree, Failed, FailureReason, Placement, Stash, Step

logger = logging.getLogger("pc_solver.solver")


@dataclass(frozen=True)
class SolveResult:
    """Answer to a solve request. `cleared` is False when no perfect clear exists within bounds."""
    cleared: bool
    actions: Tuple[Action, ...]
    steps: Tuple[Step, ...]
    state: GameState
    probability: float  # of the chosen line's assumed draws
    clear_probability: float  # under best play over every outcome
    failure: Optional[Failed] = None
    cancelled: bool = False
    cleared_leaves: int = 0
    failed_leaves: int = 0
    nodes_expanded: int = 0
    elapsed: float = 0.0
    tree: Optional[DecisionTree] = field(default=None, repr=False, compare=False)

    @property
    def placements(self) -> List[Placement]:
        return [step for step in self.steps if isinstance(step, Placement)]

    @property
    def failure_reason(self) -> Optional[FailureReason]:
        return self.failure.reason if self.failure else None

    def to_dict(self) -> Dict[str, Any]:
        steps = []
        for step in self.steps:
            if isinstance(step, Draw):
                steps.append({'draw': step.piece_type.name, 'probability': step.probability,
                              'assumed': step.assumed})
            elif isinstance(step, Stash):
                steps.append({'hold': step.piece_type.name})
            else:
                position = step.piece.position
                steps.append({
                    'place': step.piece.piece_type.name,
                    'x': position.x,
                    'y': position.y,
                    'rotation': position.rotation.name,
                    'hold': step.hold,
                    'actions': [action.value for action in step.actions],
                })
        return {
            'cleared': self.cleared,
            'probability': self.probability,
            'clear_probability': self.clear_probability,
            'actions': [action.value for action in self.actions],
            'steps': steps,
            'state': self.state.to_dict(),
            'failure': self.failure_reason.value if self.failure_reason else None,
            'cancelled': self.cancelled,
            'cleared_leaves': self.cleared_leaves,
            'failed_leaves': self.failed_leaves,
            'nodes_expanded': self.nodes_expanded,
            'elapsed': round(self.elapsed, 4),
        }


class PerfectClearSolver:
    """Searches for the most likely perfect clear from a game state."""

    def __init__(self, config: Optional[SolverConfig] = None, cache: Optional[SolverCache] = None):
        self.config = (config or SolverConfig()).validate()
        self.cache = cache if cache is not None else SolverCache()
        self.selector = DecisionSelector()

    def configure(self, config: SolverConfig):
        """Switch configuration. Cache entries under the previous fingerprint stop matching."""
        self.config = config.validate()
        self.cache.bind(config.fingerprint())

    def solve(self, state: GameState, config: Optional[SolverConfig] = None,
              cancel_event: Optional[threading.Event] = None) -> SolveResult:
        """
        Expand the full decision tree for the state and pick the best line.

        Setting `cancel_event` from another thread stops the search early;
        the answer is then chosen from the branches explored so far.
        """
        config = (config or self.config).validate()
        self.cache.bind(config.fingerprint())
        logger.info("Solving from %r, queue %s, config %s", state.board,
                    "".join(kind.name if kind else "?" for kind in state.queue),
                    config.fingerprint_hex())

        start = time.monotonic()
        expander = BranchExpander(config, self.cache, cancel_event)
        tree = expander.expand(state)
        selection = self.selector.select(tree.final_states())
        elapsed = time.monotonic() - start

        common = dict(
            clear_probability=tree.clear_probability(),
            cancelled=tree.cancelled,
            cleared_leaves=selection.cleared_count,
            failed_leaves=selection.failed_count,
            nodes_expanded=tree.nodes_expanded,
            elapsed=elapsed,
            tree=tree,
        )

        best: Optional[Cleared] = selection.best
        if best is not None:
            logger.info("Perfect clear found: %d pieces, probability %.4f (%.3fs)",
                        len(best.placements), best.probability, elapsed)
            return SolveResult(cleared=True, actions=best.actions, steps=best.steps, state=best.state,
                               probability=best.probability, failure=None, **common)

        failure = selection.best_failure
        logger.info("No perfect clear within bounds (%d failed leaves, %.3fs)", selection.failed_count, elapsed)
        if failure is None:
            return SolveResult(cleared=False, actions=(), steps=(), state=state,
                               probability=0.0, failure=None, **common)
        return SolveResult(cleared=False, actions=failure.actions, steps=failure.steps, state=failure.state,
                           probability=failure.probability, failure=failure, **common)


def solve(state: GameState, config: Optional[SolverConfig] = None,
          cache: Optional[SolverCache] = None) -> SolveResult:
    """Solve with a throwaway solver."""
    return PerfectClearSolver(config, cache).solve(state)
