"""
Board state management for the perfect clear solver.
Handles the bit-packed board representation, collisions, kicks and line clearing.
"""

from typing import Iterable, List, Optional, Sequence, Tuple
import numpy as np

from .exceptions import InvalidStateError
from .kicks import KickTable
from .pieces import Piece, Rotation

FILLED_CHARS = frozenset('#X█■1')
EMPTY_CHARS = frozenset('.·□0 _')


class Board:
    """
    Immutable 24x10 board.

    The 24 rows are split into 4 segments of 6 rows, giving 60 cells per segment
    so each segment fits in a 64-bit field. Segments are ordered from bottom to
    top and the cells in each segment from bottom-left to top-right.

    `(0, 0)` is the bottom-left cell. Walls, floor and everything above the top
    row count as filled, so collision and kick checks need no special cases.
    """

    BOARD_WIDTH = 10
    BOARD_HEIGHT = 24
    SEGMENT_ROWS = 6
    SEGMENT_COUNT = 4
    ROW_MASK = (1 << BOARD_WIDTH) - 1

    __slots__ = ('segments',)

    def __init__(self, segments: Sequence[int] = (0, 0, 0, 0)):
        if len(segments) != self.SEGMENT_COUNT:
            raise InvalidStateError(f"Board needs {self.SEGMENT_COUNT} segments, got {len(segments)}")
        self.segments = tuple(int(segment) for segment in segments)

    @classmethod
    def empty(cls) -> 'Board':
        return cls()

    @classmethod
    def filled(cls) -> 'Board':
        full = (1 << (cls.BOARD_WIDTH * cls.SEGMENT_ROWS)) - 1
        return cls((full,) * cls.SEGMENT_COUNT)

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> 'Board':
        """
        Build a board from text rows, top row first. The last row is y = 0.
        '#', 'X' and '█' are filled cells; '.', '·' and '_' are empty.
        """
        if len(rows) > cls.BOARD_HEIGHT:
            raise InvalidStateError(f"Board has at most {cls.BOARD_HEIGHT} rows, got {len(rows)}")
        row_bits = []
        for text in reversed(rows):
            if len(text) != cls.BOARD_WIDTH:
                raise InvalidStateError(f"Board rows must be {cls.BOARD_WIDTH} wide: {text!r}")
            bits = 0
            for x, char in enumerate(text):
                if char in FILLED_CHARS:
                    bits |= 1 << x
                elif char not in EMPTY_CHARS:
                    raise InvalidStateError(f"Unknown board cell {char!r} in row {text!r}")
            row_bits.append(bits)
        return cls._from_row_bits(row_bits)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'Board':
        """Build a board from a (rows, 10) array, top row first, bottom aligned."""
        grid = np.asarray(array)
        if grid.ndim != 2 or grid.shape[1] != cls.BOARD_WIDTH or grid.shape[0] > cls.BOARD_HEIGHT:
            raise InvalidStateError(f"Expected an array of shape (<= {cls.BOARD_HEIGHT}, "
                                    f"{cls.BOARD_WIDTH}), got {grid.shape}")
        weights = 1 << np.arange(cls.BOARD_WIDTH, dtype=np.int64)
        row_bits = (grid[::-1] != 0).astype(np.int64) @ weights
        return cls._from_row_bits([int(bits) for bits in row_bits])

    @classmethod
    def _from_row_bits(cls, row_bits: Sequence[int]) -> 'Board':
        segments = [0] * cls.SEGMENT_COUNT
        for y, bits in enumerate(row_bits):
            segments[y // cls.SEGMENT_ROWS] |= bits << ((y % cls.SEGMENT_ROWS) * cls.BOARD_WIDTH)
        return cls(segments)

    def to_array(self) -> np.ndarray:
        """Dense (24, 10) int8 array, top row first (0 = empty, 1 = filled)."""
        grid = np.zeros((self.BOARD_HEIGHT, self.BOARD_WIDTH), dtype=np.int8)
        for y in range(self.BOARD_HEIGHT):
            bits = self.row_bits(y)
            if bits:
                grid[self.BOARD_HEIGHT - 1 - y] = (bits >> np.arange(self.BOARD_WIDTH)) & 1
        return grid

    def is_filled(self, x: int, y: int) -> bool:
        if x < 0 or x >= self.BOARD_WIDTH or y < 0 or y >= self.BOARD_HEIGHT:
            return True
        segment = self.segments[y // self.SEGMENT_ROWS]
        return (segment >> (x + (y % self.SEGMENT_ROWS) * self.BOARD_WIDTH)) & 1 == 1

    def with_filled(self, cells: Iterable[Tuple[int, int]]) -> 'Board':
        """Return a copy with the given in-bounds cells filled."""
        segments = list(self.segments)
        for x, y in cells:
            if 0 <= x < self.BOARD_WIDTH and 0 <= y < self.BOARD_HEIGHT:
                segments[y // self.SEGMENT_ROWS] |= 1 << (x + (y % self.SEGMENT_ROWS) * self.BOARD_WIDTH)
        return Board(segments)

    def with_emptied(self, cells: Iterable[Tuple[int, int]]) -> 'Board':
        """Return a copy with the given in-bounds cells emptied."""
        segments = list(self.segments)
        for x, y in cells:
            if 0 <= x < self.BOARD_WIDTH and 0 <= y < self.BOARD_HEIGHT:
                segments[y // self.SEGMENT_ROWS] &= ~(1 << (x + (y % self.SEGMENT_ROWS) * self.BOARD_WIDTH))
        return Board(segments)

    def row_bits(self, y: int) -> int:
        segment = self.segments[y // self.SEGMENT_ROWS]
        return (segment >> ((y % self.SEGMENT_ROWS) * self.BOARD_WIDTH)) & self.ROW_MASK

    def is_line_filled(self, y: int) -> bool:
        return self.row_bits(y) == self.ROW_MASK

    def is_line_empty(self, y: int) -> bool:
        return self.row_bits(y) == 0

    def clear_lines(self) -> Tuple['Board', int]:
        """Remove every full row, compact the rest downwards and return (board, rows_cleared)."""
        kept = []
        cleared = 0
        for y in range(self.BOARD_HEIGHT):
            bits = self.row_bits(y)
            if bits == self.ROW_MASK:
                cleared += 1
            else:
                kept.append(bits)
        if not cleared:
            return self, 0
        return Board._from_row_bits(kept), cleared

    def is_empty(self) -> bool:
        return not any(self.segments)

    def cell_count(self) -> int:
        return sum(bin(segment).count('1') for segment in self.segments)

    def height(self) -> int:
        """Index of the highest filled row plus one (0 for an empty board)."""
        for y in range(self.BOARD_HEIGHT - 1, -1, -1):
            if self.row_bits(y):
                return y + 1
        return 0

    def get_height_map(self) -> List[int]:
        """Get the height of each column."""
        heights = []
        for x in range(self.BOARD_WIDTH):
            height = 0
            for y in range(self.BOARD_HEIGHT - 1, -1, -1):
                if self.is_filled(x, y):
                    height = y + 1
                    break
            heights.append(height)
        return heights

    def can_fit(self, cells: Iterable[Tuple[int, int]]) -> bool:
        return not any(self.is_filled(x, y) for x, y in cells)

    def is_valid_position(self, piece: Piece) -> bool:
        """Check if a piece position is within bounds and not colliding."""
        segments = self.segments
        for x, y in piece.get_occupied_cells():
            if x < 0 or x >= self.BOARD_WIDTH or y < 0 or y >= self.BOARD_HEIGHT:
                return False
            if (segments[y // self.SEGMENT_ROWS] >> (x + (y % self.SEGMENT_ROWS) * self.BOARD_WIDTH)) & 1:
                return False
        return True

    def can_place(self, piece: Piece) -> bool:
        """A piece can lock when a cell directly below any of its cells is filled or floor."""
        return any(self.is_filled(x, y - 1) for x, y in piece.get_occupied_cells())

    def lock_piece(self, piece: Piece) -> Tuple['Board', int]:
        """Fill the piece's cells and clear the rows it completes in one step."""
        return self.with_filled(piece.get_occupied_cells()).clear_lines()

    def move_piece(self, piece: Piece, dx: int, dy: int) -> Optional[Piece]:
        """Return the moved piece, or None if the target position collides."""
        moved = piece.translate(dx, dy)
        if self.is_valid_position(moved):
            return moved
        return None

    def rotate_piece(self, piece: Piece, rotation: Rotation, kick_table: KickTable) -> Optional[Piece]:
        """
        Rotate using the kick table. The first kick offset whose rotated piece
        fits wins; None means no offset worked and the rotation is unavailable.
        """
        rotated = piece.rotate(rotation)
        kicks = kick_table.get_kicks(piece.piece_type, piece.rotation, rotated.rotation)
        for kick_dx, kick_dy in kicks:
            kicked = rotated.translate(kick_dx, kick_dy)
            if self.is_valid_position(kicked):
                return kicked
        return None

    def get_drop_position(self, piece: Piece) -> Piece:
        """Get the piece as it would land if dropped straight down."""
        distance = self.BOARD_HEIGHT
        for x, y in piece.get_occupied_cells():
            drop = 0
            while drop < distance and not self.is_filled(x, y - drop - 1):
                drop += 1
            distance = drop
        if not distance:
            return piece
        return piece.translate(0, -distance)

    def __eq__(self, other):
        if not isinstance(other, Board):
            return False
        return self.segments == other.segments

    def __hash__(self):
        return hash(self.segments)

    def render(self, rows: Optional[int] = None, piece: Optional[Piece] = None) -> str:
        """Text rendering, top row first. Defaults to the rows in use plus the active piece."""
        piece_cells = set(piece.get_occupied_cells()) if piece else set()
        if rows is None:
            top = max([self.height()] + [y + 1 for _, y in piece_cells])
            rows = max(top, 1)
        result = []
        for y in range(rows - 1, -1, -1):
            row = ""
            for x in range(self.BOARD_WIDTH):
                if (x, y) in piece_cells:
                    row += "○"
                elif self.is_filled(x, y):
                    row += "█"
                else:
                    row += "·"
            result.append(row)
        return "\n".join(result)

    def __str__(self):
        return self.render()

    def __repr__(self):
        return f"Board(cells={self.cell_count()}, height={self.height()})"
