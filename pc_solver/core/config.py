"""
Solver configuration: randomizer, kick table, allowed moves and search bounds.
"""

import hashlib
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple
from dataclasses import dataclass, field, replace

from .exceptions import InvalidConfigurationError
from .game_state import Action, MOVEMENT_ACTIONS
from .kicks import get_kick_table


class BagType(Enum):
    """Piece randomizers."""
    RANDOM = 'random'
    SEVEN_BAG = '7-bag'
    FOURTEEN_BAG = '14-bag'

    @classmethod
    def parse(cls, name: str) -> 'BagType':
        normalized = name.strip().lower().replace('_', '-')
        aliases = {'7bag': '7-bag', 'bag': '7-bag', '14bag': '14-bag', 'memoryless': 'random'}
        normalized = aliases.get(normalized, normalized)
        for bag_type in cls:
            if bag_type.value == normalized:
                return bag_type
        raise InvalidConfigurationError(
            f"Unknown bag type {name!r}; expected one of {[b.value for b in cls]}")

    @property
    def copies(self) -> int:
        """How many of each piece kind one bag holds (0 for the memoryless randomizer)."""
        return {BagType.RANDOM: 0, BagType.SEVEN_BAG: 1, BagType.FOURTEEN_BAG: 2}[self]


DEFAULT_MOVES: FrozenSet[Action] = frozenset(MOVEMENT_ACTIONS)

MAX_PC_HEIGHT = 6


def parse_action(name: str) -> Action:
    normalized = name.strip().lower().replace('-', '_')
    aliases = {'cw': 'rotate_cw', 'ccw': 'rotate_ccw', '180': 'rotate_180',
               'softdrop': 'soft_drop', 'harddrop': 'hard_drop'}
    normalized = aliases.get(normalized, normalized)
    try:
        return Action(normalized)
    except ValueError:
        raise InvalidConfigurationError(f"Unknown move {name!r}") from None


@dataclass(frozen=True)
class SolverConfig:
    """Configuration for a solve request."""
    bag_type: BagType = BagType.SEVEN_BAG
    kick_table: str = 'srs'
    moves: FrozenSet[Action] = field(default_factory=lambda: DEFAULT_MOVES)
    hold_enabled: bool = True

    # Search bounds
    max_depth: int = 4  # pieces placed along one branch
    min_probability: float = 0.0  # branches below this are abandoned
    pc_height: int = 4  # no cell may be locked at or above this row
    satisfaction_threshold: Optional[float] = None  # stop once a clear this likely is found
    time_limit: Optional[float] = None  # seconds

    def __post_init__(self):
        object.__setattr__(self, 'moves', frozenset(self.moves))

    def validate(self) -> 'SolverConfig':
        get_kick_table(self.kick_table)
        if not isinstance(self.bag_type, BagType):
            raise InvalidConfigurationError(f"Unknown bag type {self.bag_type!r}")
        illegal = [a for a in self.moves if a not in MOVEMENT_ACTIONS]
        if illegal:
            raise InvalidConfigurationError(
                f"Moves must be movement actions, got {sorted(a.value for a in illegal)}")
        if self.max_depth < 1:
            raise InvalidConfigurationError("max_depth must be at least 1")
        if not 0.0 <= self.min_probability <= 1.0:
            raise InvalidConfigurationError("min_probability must be in [0, 1]")
        if not 1 <= self.pc_height <= MAX_PC_HEIGHT:
            raise InvalidConfigurationError(f"pc_height must be between 1 and {MAX_PC_HEIGHT}")
        if self.satisfaction_threshold is not None and not 0.0 < self.satisfaction_threshold <= 1.0:
            raise InvalidConfigurationError("satisfaction_threshold must be in (0, 1]")
        if self.time_limit is not None and self.time_limit <= 0:
            raise InvalidConfigurationError("time_limit must be positive")
        return self

    @property
    def ordered_moves(self) -> Tuple[Action, ...]:
        return tuple(a for a in MOVEMENT_ACTIONS if a in self.moves)

    def fingerprint(self) -> Tuple:
        """Everything that changes placement search or draw probabilities."""
        return (
            self.bag_type.value,
            self.kick_table,
            tuple(a.value for a in self.ordered_moves),
            self.hold_enabled,
            self.pc_height,
        )

    def fingerprint_hex(self) -> str:
        return hashlib.sha1(repr(self.fingerprint()).encode('utf-8')).hexdigest()[:12]

    def with_overrides(self, **changes) -> 'SolverConfig':
        return replace(self, **changes).validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SolverConfig':
        """Build a config from plain names, e.g. parsed JSON or CLI options."""
        known = {'bag_type', 'kick_table', 'moves', 'hold_enabled', 'max_depth',
                 'min_probability', 'pc_height', 'satisfaction_threshold', 'time_limit'}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {k: v for k, v in data.items() if v is not None}
        if 'bag_type' in kwargs and not isinstance(kwargs['bag_type'], BagType):
            kwargs['bag_type'] = BagType.parse(kwargs['bag_type'])
        if 'kick_table' in kwargs:
            get_kick_table(kwargs['kick_table'])
        if 'moves' in kwargs:
            kwargs['moves'] = frozenset(
                m if isinstance(m, Action) else parse_action(m) for m in kwargs['moves'])
        return cls(**kwargs).validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bag_type': self.bag_type.value,
            'kick_table': self.kick_table,
            'moves': [a.value for a in self.ordered_moves],
            'hold_enabled': self.hold_enabled,
            'max_depth': self.max_depth,
            'min_probability': self.min_probability,
            'pc_height': self.pc_height,
            'satisfaction_threshold': self.satisfaction_threshold,
            'time_limit': self.time_limit,
        }


def moves_from_names(names: Iterable[str]) -> FrozenSet[Action]:
    return frozenset(parse_action(name) for name in names)
