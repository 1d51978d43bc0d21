"""
Tetromino piece definitions and geometry for the perfect clear solver.
Includes all 7 pieces, their bounding boxes, spawn points and the symmetric
rotation of bounding box contents used for every orientation.
"""

from enum import Enum, IntEnum
from typing import List, Tuple, Dict, Optional
from dataclasses import dataclass

from .exceptions import InvalidStateError


class PieceType(Enum):
    """The 7 standard Tetris pieces."""
    I = 0
    J = 1
    L = 2
    O = 3
    S = 4
    T = 5
    Z = 6

    @classmethod
    def from_letter(cls, letter: str) -> 'PieceType':
        try:
            return cls[letter.strip().upper()]
        except KeyError:
            raise InvalidStateError(f"Unknown piece kind: {letter!r}") from None


class Rotation(IntEnum):
    """Rotation directions, expressed as quarter turns clockwise."""
    CLOCKWISE = 1
    ANTICLOCKWISE = -1
    HALF = 2


class Orientation(IntEnum):
    """Rotation states 0, R, 2 and L."""
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    def rotated(self, rotation: Rotation) -> 'Orientation':
        return Orientation((self.value + rotation.value) % 4)


@dataclass(frozen=True)
class Position:
    """
    Bottom-left corner of a piece's bounding box plus its orientation.
    x grows to the right and y grows upwards from the floor.
    """
    x: int
    y: int
    rotation: Orientation = Orientation.NORTH

    def offset(self, dx: int, dy: int) -> 'Position':
        return Position(self.x + dx, self.y + dy, self.rotation)

    def rotated_to(self, rotation: Orientation) -> 'Position':
        return Position(self.x, self.y, rotation)


# Spawn orientation shapes: [row][x], top row first, 1 = filled.
PIECE_DEFINITIONS: Dict[PieceType, List[List[int]]] = {
    PieceType.I: [[0, 0, 0, 0],
                  [1, 1, 1, 1],
                  [0, 0, 0, 0],
                  [0, 0, 0, 0]],
    PieceType.J: [[1, 0, 0],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.L: [[0, 0, 1],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.O: [[0, 0, 0, 0],
                  [0, 1, 1, 0],
                  [0, 1, 1, 0],
                  [0, 0, 0, 0]],
    PieceType.S: [[0, 1, 1],
                  [1, 1, 0],
                  [0, 0, 0]],
    PieceType.T: [[0, 1, 0],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.Z: [[1, 1, 0],
                  [0, 1, 1],
                  [0, 0, 0]],
}

SPAWN_POSITIONS: Dict[PieceType, Tuple[int, int]] = {
    PieceType.I: (3, 18),
    PieceType.J: (3, 19),
    PieceType.L: (3, 19),
    PieceType.O: (3, 19),
    PieceType.S: (3, 19),
    PieceType.T: (3, 19),
    PieceType.Z: (3, 19),
}


def _spawn_offsets(piece_type: PieceType) -> List[Tuple[int, int]]:
    """Cell offsets of the spawn orientation, measured from the bottom-left of the box."""
    rows = PIECE_DEFINITIONS[piece_type]
    size = len(rows)
    offsets = []
    for row_index, row in enumerate(rows):
        for x, cell in enumerate(row):
            if cell:
                offsets.append((x, size - 1 - row_index))
    return offsets


def _orient(offsets: List[Tuple[int, int]], size: int, rotation: Orientation) -> Tuple[Tuple[int, int], ...]:
    """Rotate offsets inside a size x size bounding box."""
    last = size - 1
    if rotation == Orientation.NORTH:
        oriented = offsets
    elif rotation == Orientation.EAST:
        oriented = [(y, last - x) for x, y in offsets]
    elif rotation == Orientation.SOUTH:
        oriented = [(last - x, last - y) for x, y in offsets]
    else:
        oriented = [(last - y, x) for x, y in offsets]
    return tuple(sorted(oriented, key=lambda cell: (cell[1], cell[0])))


def bounding_box_size(piece_type: PieceType) -> int:
    return len(PIECE_DEFINITIONS[piece_type])


CELL_OFFSETS: Dict[Tuple[PieceType, Orientation], Tuple[Tuple[int, int], ...]] = {
    (piece_type, rotation): _orient(_spawn_offsets(piece_type), bounding_box_size(piece_type), rotation)
    for piece_type in PieceType
    for rotation in Orientation
}


class Piece:
    """A piece kind at a position and orientation (the active piece state)."""

    __slots__ = ('piece_type', 'position')

    def __init__(self, piece_type: PieceType, position: Position):
        self.piece_type = piece_type
        self.position = position

    @classmethod
    def spawn(cls, piece_type: PieceType) -> 'Piece':
        return cls(piece_type, get_spawn_position(piece_type))

    @property
    def rotation(self) -> Orientation:
        return self.position.rotation

    @property
    def offsets(self) -> Tuple[Tuple[int, int], ...]:
        return CELL_OFFSETS[(self.piece_type, self.position.rotation)]

    def get_occupied_cells(self) -> List[Tuple[int, int]]:
        """Get the board coordinates occupied by this piece."""
        x0, y0 = self.position.x, self.position.y
        return [(x0 + dx, y0 + dy) for dx, dy in self.offsets]

    def rotate(self, rotation: Rotation) -> 'Piece':
        """Rotate in place within the bounding box, without any kick."""
        return Piece(self.piece_type, self.position.rotated_to(self.position.rotation.rotated(rotation)))

    def translate(self, dx: int, dy: int) -> 'Piece':
        """Move the piece by the given offsets."""
        return Piece(self.piece_type, self.position.offset(dx, dy))

    def __eq__(self, other):
        if not isinstance(other, Piece):
            return False
        return self.piece_type == other.piece_type and self.position == other.position

    def __hash__(self):
        return hash((self.piece_type, self.position))

    def __repr__(self):
        return (f"Piece({self.piece_type.name}, x={self.position.x}, y={self.position.y}, "
                f"r={self.position.rotation.name})")


def get_spawn_position(piece_type: PieceType) -> Position:
    """Get the spawn position for this piece type."""
    x, y = SPAWN_POSITIONS[piece_type]
    return Position(x, y, Orientation.NORTH)


def get_all_piece_types() -> List[PieceType]:
    """Get all piece types in canonical order."""
    return list(PieceType)


def parse_piece(letter: Optional[str]) -> Optional[PieceType]:
    """Parse a piece letter; '?', '_' and '' mean an unknown piece."""
    if letter is None or letter.strip() in ('', '?', '_', '-'):
        return None
    return PieceType.from_letter(letter)
