"""
Final decision selection: picks the most probable perfect clear out of the
final states of a decision tree, or the most promising failure when none
clears.
"""

from typing import Iterable, Optional, Tuple
from dataclasses import dataclass

from ..core.game_state import Action
from .tree import Cleared, Failed, FinalState

# Probabilities are products of the same factors in different orders
PROBABILITY_DIGITS = 12


def action_key(actions: Iterable[Action]) -> Tuple[int, ...]:
    return tuple(action.order for action in actions)


def cleared_rank(final: Cleared) -> Tuple:
    """Higher probability first, then fewer pieces, then the lexicographically smallest inputs."""
    return (-round(final.probability, PROBABILITY_DIGITS), len(final.placements), action_key(final.actions))


def failed_rank(final: Failed) -> Tuple:
    """Higher probability first, then more pieces placed, then the smallest inputs."""
    return (-round(final.probability, PROBABILITY_DIGITS), -len(final.placements), action_key(final.actions))


@dataclass(frozen=True)
class Selection:
    best: Optional[Cleared]
    best_failure: Optional[Failed]
    cleared_count: int
    failed_count: int

    @property
    def exhausted(self) -> bool:
        return self.best is None


class DecisionSelector:
    """Chooses one final state from a stream of leaves."""

    def select(self, final_states: Iterable[FinalState]) -> Selection:
        best: Optional[Cleared] = None
        best_failure: Optional[Failed] = None
        cleared_count = 0
        failed_count = 0

        for final in final_states:
            if isinstance(final, Cleared):
                cleared_count += 1
                if best is None or cleared_rank(final) < cleared_rank(best):
                    best = final
            else:
                failed_count += 1
                if best_failure is None or failed_rank(final) < failed_rank(best_failure):
                    best_failure = final

        return Selection(best, best_failure, cleared_count, failed_count)
