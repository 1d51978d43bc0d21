"""
Decision tree produced by branch expansion.

Chance nodes fan out over the possible next pieces, decision nodes over the
player's choices (placements and hold), and leaves mark a perfect clear or
the reason a branch was abandoned. Walking the tree yields one final state
per leaf with the full path that leads to it.
"""

from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from ..core.game_state import Action, GameState
from ..core.pieces import Piece, PieceType


class FailureReason(Enum):
    """Why a branch ended without a perfect clear."""
    NO_VALID_PLACEMENT = 'no_valid_placement'
    DEPTH_LIMIT = 'depth_limit'
    PROBABILITY_FLOOR = 'probability_floor'
    HEIGHT_LIMIT = 'height_limit'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class Draw:
    """A piece taken from the queue. `assumed` marks a guess for an unknown slot."""
    piece_type: PieceType
    probability: float
    assumed: bool

    @property
    def actions(self) -> Tuple[Action, ...]:
        return ()


@dataclass(frozen=True)
class Stash:
    """The active piece moved into an empty hold slot."""
    piece_type: PieceType

    @property
    def actions(self) -> Tuple[Action, ...]:
        return (Action.HOLD,)


@dataclass(frozen=True)
class Placement:
    """A piece locked at its final position, with the inputs that get it there."""
    piece: Piece
    hold: bool  # swapped with the hold slot first
    actions: Tuple[Action, ...]


Step = Union[Draw, Stash, Placement]


def _flatten(steps: Tuple[Step, ...]) -> Tuple[Action, ...]:
    return tuple(action for step in steps for action in step.actions)


@dataclass(frozen=True)
class Cleared:
    """A branch that ends in a perfect clear."""
    state: GameState
    steps: Tuple[Step, ...]
    probability: float

    @property
    def actions(self) -> Tuple[Action, ...]:
        return _flatten(self.steps)

    @property
    def placements(self) -> List[Placement]:
        return [step for step in self.steps if isinstance(step, Placement)]


@dataclass(frozen=True)
class Failed:
    """A branch abandoned before reaching a perfect clear."""
    reason: FailureReason
    state: GameState
    steps: Tuple[Step, ...]
    probability: float

    @property
    def actions(self) -> Tuple[Action, ...]:
        return _flatten(self.steps)

    @property
    def placements(self) -> List[Placement]:
        return [step for step in self.steps if isinstance(step, Placement)]


FinalState = Union[Cleared, Failed]


@dataclass(frozen=True)
class Leaf:
    state: GameState
    reason: Optional[FailureReason] = None  # None for a perfect clear

    @property
    def cleared(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class Outcome:
    probability: float
    assumed: bool
    node: 'Node'


@dataclass
class ChanceNode:
    """A state waiting for its next piece."""
    state: GameState
    outcomes: Dict[PieceType, Outcome] = field(default_factory=dict)


@dataclass
class DecisionNode:
    """A state with an active piece. A Stash key means holding into an empty slot."""
    state: GameState
    options: Dict[Union[Placement, Stash], 'Node'] = field(default_factory=dict)


Node = Union[ChanceNode, DecisionNode, Leaf]


def clear_probability(node: Node) -> float:
    """Chance of a perfect clear under best play (expectimax over the tree)."""
    if isinstance(node, Leaf):
        return 1.0 if node.cleared else 0.0
    if isinstance(node, ChanceNode):
        return sum(outcome.probability * clear_probability(outcome.node)
                   for outcome in node.outcomes.values())
    return max((clear_probability(child) for child in node.options.values()), default=0.0)


class DecisionTree:
    """Root of an expanded search plus bookkeeping from the expansion."""

    def __init__(self, root: Node, cancelled: bool = False, nodes_expanded: int = 0):
        self.root = root
        self.cancelled = cancelled
        self.nodes_expanded = nodes_expanded

    def final_states(self) -> Iterator[FinalState]:
        """Every leaf, with the steps leading to it from the root."""
        stack: List[Tuple[Node, Tuple[Step, ...]]] = [(self.root, ())]
        while stack:
            node, steps = stack.pop()
            if isinstance(node, Leaf):
                if node.cleared:
                    yield Cleared(node.state, steps, node.state.probability)
                else:
                    yield Failed(node.reason, node.state, steps, node.state.probability)
            elif isinstance(node, ChanceNode):
                for kind, outcome in reversed(list(node.outcomes.items())):
                    stack.append((outcome.node, steps + (Draw(kind, outcome.probability, outcome.assumed),)))
            else:
                for option, child in reversed(list(node.options.items())):
                    stack.append((child, steps + (option,)))

    def clear_probability(self) -> float:
        return clear_probability(self.root)
