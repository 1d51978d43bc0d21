"""
Wall kick tables for the perfect clear solver.
Offsets are (x_offset, y_offset) with y pointing up, tried in order; the first
offset whose rotated piece fits on the board is used.
"""

from typing import Dict, List, Tuple

from .exceptions import InvalidConfigurationError
from .pieces import PieceType, Orientation

Kick = Tuple[int, int]
Transition = Tuple[int, int]

# SRS (Super Rotation System) wall kick data, keyed by (from_rotation, to_rotation)
SRS_JLSTZ_KICKS: Dict[Transition, List[Kick]] = {
    (0, 1): [(0, 0), (-1, 0), (-1, 1), (0, -2), (-1, -2)],
    (1, 0): [(0, 0), (1, 0), (1, -1), (0, 2), (1, 2)],
    (1, 2): [(0, 0), (1, 0), (1, -1), (0, 2), (1, 2)],
    (2, 1): [(0, 0), (-1, 0), (-1, 1), (0, -2), (-1, -2)],
    (2, 3): [(0, 0), (1, 0), (1, 1), (0, -2), (1, -2)],
    (3, 2): [(0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)],
    (3, 0): [(0, 0), (-1, 0), (-1, -1), (0, 2), (-1, 2)],
    (0, 3): [(0, 0), (1, 0), (1, 1), (0, -2), (1, -2)]
}

SRS_I_KICKS: Dict[Transition, List[Kick]] = {
    (0, 1): [(0, 0), (-2, 0), (1, 0), (-2, -1), (1, 2)],
    (1, 0): [(0, 0), (2, 0), (-1, 0), (2, 1), (-1, -2)],
    (1, 2): [(0, 0), (-1, 0), (2, 0), (-1, 2), (2, -1)],
    (2, 1): [(0, 0), (1, 0), (-2, 0), (1, -2), (-2, 1)],
    (2, 3): [(0, 0), (2, 0), (-1, 0), (2, 1), (-1, -2)],
    (3, 2): [(0, 0), (-2, 0), (1, 0), (-2, -1), (1, 2)],
    (3, 0): [(0, 0), (1, 0), (-2, 0), (1, -2), (-2, 1)],
    (0, 3): [(0, 0), (-1, 0), (2, 0), (-1, 2), (2, -1)]
}

# 180 degree kicks as used by TETR.IO's SRS+
HALF_TURN_KICKS: Dict[Transition, List[Kick]] = {
    (0, 2): [(0, 0), (0, 1), (1, 1), (-1, 1), (1, 0), (-1, 0)],
    (1, 3): [(0, 0), (1, 0), (1, 2), (1, 1), (0, 2), (0, 1)],
    (2, 0): [(0, 0), (0, -1), (-1, -1), (1, -1), (-1, 0), (1, 0)],
    (3, 1): [(0, 0), (-1, 0), (-1, 2), (-1, 1), (0, 2), (0, 1)]
}

NO_KICK: List[Kick] = [(0, 0)]


class KickTable:
    """Looks up the ordered kick candidates for a rotation transition."""

    def __init__(self, name: str, i_kicks: Dict[Transition, List[Kick]],
                 jlstz_kicks: Dict[Transition, List[Kick]],
                 half_turn_kicks: Dict[Transition, List[Kick]]):
        self.name = name
        self.i_kicks = i_kicks
        self.jlstz_kicks = jlstz_kicks
        self.half_turn_kicks = half_turn_kicks

    def get_kicks(self, piece_type: PieceType, from_rotation: Orientation,
                  to_rotation: Orientation) -> List[Kick]:
        """Get the wall kick offsets for a rotation."""
        if piece_type == PieceType.O:
            return NO_KICK

        key = (int(from_rotation), int(to_rotation))
        if (key[1] - key[0]) % 4 == 2:
            return self.half_turn_kicks.get(key, NO_KICK)
        if piece_type == PieceType.I:
            return self.i_kicks.get(key, NO_KICK)
        return self.jlstz_kicks.get(key, NO_KICK)

    def __repr__(self):
        return f"KickTable({self.name!r})"


KICK_TABLES: Dict[str, KickTable] = {
    'srs': KickTable('srs', SRS_I_KICKS, SRS_JLSTZ_KICKS, {}),
    'srs_180': KickTable('srs_180', SRS_I_KICKS, SRS_JLSTZ_KICKS, HALF_TURN_KICKS),
    'none': KickTable('none', {}, {}, {}),
}


def get_kick_table(name: str) -> KickTable:
    try:
        return KICK_TABLES[name]
    except KeyError:
        raise InvalidConfigurationError(
            f"Unknown kick table {name!r}; expected one of {sorted(KICK_TABLES)}") from None
