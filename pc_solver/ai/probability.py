"""
Next-piece probability model for the perfect clear solver.
Infers where the randomizer is inside its bag from the recent piece history
and gives the distribution of the next unseen piece.
"""

import logging
import numpy as np
from typing import List, Sequence, Tuple

from ..core.config import BagType
from ..core.game_state import HISTORY_SIZE
from ..core.pieces import PieceType

logger = logging.getLogger("pc_solver.probability")

PIECE_COUNT = len(PieceType)


def _counts(pieces: Sequence[PieceType]) -> np.ndarray:
    counts = np.zeros(PIECE_COUNT, dtype=np.int64)
    for kind in pieces:
        counts[kind.value] += 1
    return counts


def is_consistent_phase(history: Sequence[PieceType], phase: int, copies: int) -> bool:
    """
    Check whether the history could have been dealt with `phase` pieces
    already drawn from the current bag. Every complete or partial bag in the
    history may hold at most `copies` of each kind.
    """
    bag_size = PIECE_COUNT * copies
    end = len(history)
    start = max(0, end - phase)
    while end > 0:
        if (_counts(history[start:end]) > copies).any():
            return False
        end = start
        start = max(0, end - bag_size)
    return True


def _sequence_probability(pieces: Sequence[PieceType], copies: int) -> float:
    """Chance that a fresh bag deals exactly these pieces first, in this order."""
    remaining = np.full(PIECE_COUNT, copies, dtype=np.int64)
    probability = 1.0
    for drawn, kind in enumerate(pieces):
        if remaining[kind.value] == 0:
            return 0.0
        probability *= remaining[kind.value] / (PIECE_COUNT * copies - drawn)
        remaining[kind.value] -= 1
    return probability


def phase_likelihood(history: Sequence[PieceType], phase: int, copies: int) -> float:
    """
    Likelihood of the history given that the current bag has dealt `phase`
    pieces. Each bag in the window contributes the chance of its observed
    run; the oldest bag is only seen by its tail, which by symmetry has the
    same chance as the matching head.
    """
    bag_size = PIECE_COUNT * copies
    end = len(history)
    start = max(0, end - phase)
    likelihood = 1.0
    while end > 0:
        likelihood *= _sequence_probability(history[start:end], copies)
        if not likelihood:
            return 0.0
        end = start
        start = max(0, end - bag_size)
    return likelihood


def bag_distribution(history: Sequence[PieceType], phase: int, copies: int) -> np.ndarray:
    """Distribution of the next piece given how many pieces the current bag has dealt."""
    current = history[len(history) - phase:] if phase else ()
    remaining = copies - _counts(current)
    return remaining / remaining.sum()


class ProbabilityModel:
    """Estimates next-piece probabilities for a randomizer."""

    def __init__(self, bag_type: BagType):
        self.bag_type = bag_type

    def candidate_phases(self, history: Sequence[PieceType]) -> List[int]:
        """
        Bag phases consistent with the history. A short history is taken to
        start at a bag boundary; a full window has an unknown alignment, so
        every consistent phase is returned. `distribution` weights them by
        `phase_likelihood`.
        """
        copies = self.bag_type.copies
        bag_size = PIECE_COUNT * copies
        if len(history) < HISTORY_SIZE:
            phase = len(history) % bag_size
            if is_consistent_phase(history, phase, copies):
                return [phase]
        return [phase for phase in range(min(bag_size, len(history) + 1))
                if is_consistent_phase(history, phase, copies)]

    def distribution(self, history: Sequence[PieceType]) -> np.ndarray:
        """Probability of each piece kind, indexed by PieceType value."""
        uniform = np.full(PIECE_COUNT, 1.0 / PIECE_COUNT)
        if self.bag_type == BagType.RANDOM:
            return uniform

        history = tuple(history)[-HISTORY_SIZE:]
        phases = self.candidate_phases(history)
        if not phases:
            logger.warning("History %s fits no %s phase, assuming uniform draws",
                           "".join(kind.name for kind in history), self.bag_type.value)
            return uniform

        copies = self.bag_type.copies
        weights = np.array([phase_likelihood(history, phase, copies) for phase in phases])
        distributions = np.array([bag_distribution(history, phase, copies) for phase in phases])
        probabilities = weights @ distributions
        return probabilities / probabilities.sum()

    def outcomes(self, history: Sequence[PieceType]) -> List[Tuple[PieceType, float]]:
        """Possible next pieces with non-zero probability, in canonical order."""
        probabilities = self.distribution(history)
        return [(kind, float(probabilities[kind.value])) for kind in PieceType
                if probabilities[kind.value] > 0]
