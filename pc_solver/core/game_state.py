"""
Game state for the perfect clear solver.
Immutable snapshots of the board, active piece, hold slot, queue and piece
history, with reducers that return the state after a single action.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field, replace

from .board import Board
from .exceptions import GameOverError, IllegalMoveError, InvalidStateError
from .kicks import KickTable
from .pieces import Orientation, Piece, PieceType, Position, Rotation, parse_piece

HISTORY_SIZE = 14


class Action(Enum):
    """A single input action."""
    HOLD = 'hold'
    ROTATE_CW = 'rotate_cw'
    ROTATE_CCW = 'rotate_ccw'
    ROTATE_180 = 'rotate_180'
    LEFT = 'left'
    RIGHT = 'right'
    SOFT_DROP = 'soft_drop'
    HARD_DROP = 'hard_drop'
    PLACE = 'place'

    @property
    def order(self) -> int:
        return ACTION_ORDER.index(self)


# Canonical order: used for search expansion and for lexicographic tie-breaks
ACTION_ORDER: List[Action] = list(Action)

MOVEMENT_ACTIONS: Tuple[Action, ...] = (
    Action.ROTATE_CW,
    Action.ROTATE_CCW,
    Action.ROTATE_180,
    Action.LEFT,
    Action.RIGHT,
    Action.SOFT_DROP,
    Action.HARD_DROP,
)

ROTATIONS: Dict[Action, Rotation] = {
    Action.ROTATE_CW: Rotation.CLOCKWISE,
    Action.ROTATE_CCW: Rotation.ANTICLOCKWISE,
    Action.ROTATE_180: Rotation.HALF,
}

TRANSLATIONS: Dict[Action, Tuple[int, int]] = {
    Action.LEFT: (-1, 0),
    Action.RIGHT: (1, 0),
    Action.SOFT_DROP: (0, -1),
}


def apply_movement(board: Board, piece: Piece, action: Action, kick_table: KickTable) -> Optional[Piece]:
    """The piece after one movement action, or None if the action is unavailable."""
    if action in ROTATIONS:
        return board.rotate_piece(piece, ROTATIONS[action], kick_table)
    if action in TRANSLATIONS:
        dx, dy = TRANSLATIONS[action]
        return board.move_piece(piece, dx, dy)
    if action == Action.HARD_DROP:
        dropped = board.get_drop_position(piece)
        if dropped.position == piece.position:
            return None
        return dropped
    raise ValueError(f"{action} is not a movement action")


@dataclass(frozen=True)
class GameState:
    """Current state of the game, as seen by the solver."""
    board: Board = field(default_factory=Board.empty)
    piece: Optional[Piece] = None
    hold: Optional[PieceType] = None
    hold_used: bool = False
    queue: Tuple[Optional[PieceType], ...] = ()  # None marks an unknown piece
    history: Tuple[PieceType, ...] = ()  # most recent last
    pieces_placed: int = 0  # since the last perfect clear
    probability: float = 1.0

    def __post_init__(self):
        if not 0.0 <= self.probability <= 1.0:
            raise InvalidStateError(f"Branch probability must be in [0, 1], got {self.probability}")
        if len(self.history) > HISTORY_SIZE:
            object.__setattr__(self, 'history', tuple(self.history[-HISTORY_SIZE:]))
        # A piece blocked at its spawn point means the board is topped out
        if (self.piece is not None and self.piece != Piece.spawn(self.piece.piece_type)
                and not self.board.is_valid_position(self.piece)):
            raise InvalidStateError(f"Active piece {self.piece!r} overlaps the board")

    def _check_not_topped_out(self):
        if not self.board.is_valid_position(self.piece):
            raise GameOverError(f"{self.piece.piece_type.name} is blocked at spawn")

    @property
    def next_kind(self) -> Optional[PieceType]:
        """The next queue entry, or None when it is unknown or the queue is exhausted."""
        return self.queue[0] if self.queue else None

    @property
    def is_perfect_clear(self) -> bool:
        return self.board.is_empty()

    def with_drawn(self, piece_type: PieceType, probability: float = 1.0) -> 'GameState':
        """Take the next piece out of the queue and spawn it as the active piece."""
        if self.piece is not None:
            raise InvalidStateError("Cannot draw while a piece is active")
        front = self.next_kind
        if front is not None and front != piece_type:
            raise InvalidStateError(f"Queue starts with {front.name}, cannot draw {piece_type.name}")

        next_piece = Piece.spawn(piece_type)
        if not self.board.is_valid_position(next_piece):
            raise GameOverError(f"{piece_type.name} cannot spawn")

        return replace(
            self,
            piece=next_piece,
            queue=self.queue[1:],
            history=(self.history + (piece_type,))[-HISTORY_SIZE:],
            probability=self.probability * probability,
        )

    def with_hold(self) -> 'GameState':
        """
        Swap the active piece with the held one. With an empty hold slot the
        active piece is stashed and the active slot is left empty for a draw.
        """
        if self.piece is None:
            raise IllegalMoveError("No active piece to hold")
        if self.hold_used:
            raise IllegalMoveError("Hold already used for this piece")

        if self.hold is None:
            return replace(self, piece=None, hold=self.piece.piece_type, hold_used=True)

        next_piece = Piece.spawn(self.hold)
        if not self.board.is_valid_position(next_piece):
            raise GameOverError(f"{self.hold.name} cannot spawn from hold")
        return replace(self, piece=next_piece, hold=self.piece.piece_type, hold_used=True)

    def with_move(self, action: Action, kick_table: KickTable) -> 'GameState':
        if self.piece is None:
            raise IllegalMoveError("No active piece to move")
        self._check_not_topped_out()
        moved = apply_movement(self.board, self.piece, action, kick_table)
        if moved is None:
            raise IllegalMoveError(f"{action.value} is not available for {self.piece!r}")
        return replace(self, piece=moved)

    def with_piece_at(self, position: Position) -> 'GameState':
        if self.piece is None:
            raise IllegalMoveError("No active piece to position")
        return replace(self, piece=Piece(self.piece.piece_type, position))

    def with_placed_piece(self) -> 'GameState':
        """Lock the active piece, clearing any rows it completes."""
        if self.piece is None:
            raise IllegalMoveError("No active piece to place")
        self._check_not_topped_out()
        if not self.board.can_place(self.piece):
            raise IllegalMoveError(f"{self.piece!r} is not resting on anything")

        board, _ = self.board.lock_piece(self.piece)
        return replace(
            self,
            board=board,
            piece=None,
            hold_used=False,
            pieces_placed=0 if board.is_empty() else self.pieces_placed + 1,
        )

    def apply(self, action: Action, kick_table: KickTable) -> 'GameState':
        """
        Apply a single action. Emptying the active slot through hold draws the
        next queue piece when it is known.
        """
        if action == Action.HOLD:
            held = self.with_hold()
            if held.piece is None and held.next_kind is not None:
                return held.with_drawn(held.next_kind)
            return held
        if action == Action.PLACE:
            return self.with_placed_piece()
        return self.with_move(action, kick_table)

    def to_dict(self) -> Dict[str, Any]:
        piece = None
        if self.piece is not None:
            piece = {
                'kind': self.piece.piece_type.name,
                'x': self.piece.position.x,
                'y': self.piece.position.y,
                'rotation': self.piece.rotation.name,
            }
        return {
            'board': self.board.render(rows=max(self.board.height(), 1)).split("\n"),
            'piece': piece,
            'hold': self.hold.name if self.hold else None,
            'hold_used': self.hold_used,
            'queue': [kind.name if kind else None for kind in self.queue],
            'history': [kind.name for kind in self.history],
            'pieces_placed': self.pieces_placed,
            'probability': self.probability,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameState':
        board = Board.from_rows(data.get('board') or [])
        piece = None
        piece_data = data.get('piece')
        if piece_data:
            piece_type = PieceType.from_letter(piece_data['kind'])
            if 'x' in piece_data:
                rotation = piece_data.get('rotation', 'NORTH')
                if isinstance(rotation, str):
                    rotation = Orientation[rotation.upper()]
                piece = Piece(piece_type, Position(piece_data['x'], piece_data['y'], Orientation(rotation)))
            else:
                piece = Piece.spawn(piece_type)
        return cls(
            board=board,
            piece=piece,
            hold=parse_piece(data.get('hold')),
            hold_used=bool(data.get('hold_used', False)),
            queue=tuple(parse_piece(kind) for kind in data.get('queue', ())),
            history=tuple(PieceType.from_letter(kind) for kind in data.get('history', ())),
            pieces_placed=int(data.get('pieces_placed', 0)),
            probability=float(data.get('probability', 1.0)),
        )
