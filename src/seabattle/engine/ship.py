"""Ship domain model for the Sea Battle engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

BOARD_SIZE = 10


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate."""

    x: int
    y: int

    def in_bounds(self, size: int = BOARD_SIZE) -> bool:
        return 0 <= self.x < size and 0 <= self.y < size


class ShipType(Enum):
    """Size classes a client may label its ships with."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"


@dataclass(frozen=True)
class ShipPlacement:
    """A fleet entry as submitted: anchor, growth direction and length.

    Numbers are kept as received so that placement validation can reject
    non-integer values instead of silently truncating them.
    """

    x: int | float
    y: int | float
    vertical: bool
    length: int | float
    ship_type: ShipType = ShipType.SMALL


@dataclass
class Ship:
    """A placed vessel and the cells of it that are still afloat."""

    id: int
    ship_type: ShipType
    original_cells: tuple[Coordinate, ...]
    remaining_cells: set[Coordinate] = field(init=False)

    def __post_init__(self) -> None:
        self.remaining_cells = set(self.original_cells)

    @property
    def length(self) -> int:
        return len(self.original_cells)

    def is_sunk(self) -> bool:
        """Determine whether every cell of the ship has been hit."""
        return not self.remaining_cells

    def hit(self, coord: Coordinate) -> bool:
        """Remove ``coord`` from the live cells; False if it was not live."""
        if coord not in self.remaining_cells:
            return False
        self.remaining_cells.discard(coord)
        return True


def describe_ship(ship: Ship) -> tuple[Coordinate, bool, int]:
    """Re-derive ``(anchor, vertical, length)`` from a ship's cells."""
    cells = ship.original_cells
    vertical = len(cells) > 1 and cells[0].x == cells[1].x
    return cells[0], vertical, len(cells)
