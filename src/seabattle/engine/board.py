"""Single-player board management for the Sea Battle engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from seabattle.errors import InvalidPlacement, InvalidShipShape, OutOfBounds, OverlappingShips
from seabattle.telemetry import get_meter, get_tracer

from .ship import BOARD_SIZE, Coordinate, Ship, ShipPlacement

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.board")
meter = get_meter("seabattle.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "seabattle_engine_fleet_placements",
    unit="1",
    description="Number of attempted fleet placements",
)

SHOT_COUNTER = meter.create_counter(
    "seabattle_engine_cells_removed",
    unit="1",
    description="Ship cells removed from a board by hits",
)


def _as_int(value: int | float) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def expand_placement(placement: ShipPlacement) -> tuple[Coordinate, ...]:
    """Expand a fleet entry into its cells, growing in +x or +y from the anchor."""
    x = _as_int(placement.x)
    y = _as_int(placement.y)
    if x is None or y is None:
        raise InvalidShipShape("Coordinates must be integers")
    length = _as_int(placement.length)
    if length is None or length < 1:
        raise InvalidShipShape("Invalid length expansion")
    if placement.vertical:
        return tuple(Coordinate(x, y + offset) for offset in range(length))
    return tuple(Coordinate(x + offset, y) for offset in range(length))


def validate_placement(
    placements: Sequence[ShipPlacement], size: int = BOARD_SIZE
) -> list[tuple[Coordinate, ...]]:
    """Expand and check a whole fleet without touching any board state.

    Returns the expanded cell tuples in fleet order. Ships may touch each
    other; only an exact cell collision is rejected.
    """
    occupied: set[Coordinate] = set()
    expanded: list[tuple[Coordinate, ...]] = []
    for placement in placements:
        cells = expand_placement(placement)
        for cell in cells:
            if not cell.in_bounds(size):
                raise OutOfBounds(f"Ship out of bounds: ({cell.x},{cell.y})")
            if cell in occupied:
                raise OverlappingShips("Ships overlap")
            occupied.add(cell)
        expanded.append(cells)
    return expanded


@dataclass
class Board:
    """A player's own fleet and the shots that player has fired."""

    size: int = BOARD_SIZE
    ships: list[Ship] = field(default_factory=list)
    occupancy: dict[Coordinate, int] = field(default_factory=dict)
    tried: set[Coordinate] = field(default_factory=set)
    owner: str = "unknown"

    def place(self, placements: Sequence[ShipPlacement]) -> None:
        """Replace the fleet with ``placements`` once the whole fleet validates."""
        with tracer.start_as_current_span("board.place") as span:
            span.set_attribute("board.owner", self.owner)
            span.set_attribute("fleet.size", len(placements))
            try:
                expanded = validate_placement(placements, self.size)
            except InvalidPlacement as exc:
                PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "owner": self.owner})
                logger.warning(
                    "fleet_placement_failed",
                    extra={"owner": self.owner, "reason": str(exc)},
                )
                raise

            self.ships = [
                Ship(id=index, ship_type=placement.ship_type, original_cells=cells)
                for index, (placement, cells) in enumerate(zip(placements, expanded))
            ]
            self.occupancy = {
                cell: ship.id for ship in self.ships for cell in ship.original_cells
            }
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            logger.info(
                "fleet_placed",
                extra={
                    "owner": self.owner,
                    "ships": len(self.ships),
                    "cells": len(self.occupancy),
                },
            )

    def has_fleet(self) -> bool:
        return bool(self.ships)

    def record_shot(self, coord: Coordinate) -> bool:
        """Mark ``coord`` as fired at; return True if it already was."""
        if coord in self.tried:
            return True
        self.tried.add(coord)
        return False

    def ship_at(self, coord: Coordinate) -> Ship | None:
        index = self.occupancy.get(coord)
        if index is None:
            return None
        return self.ships[index]

    def remove_cell(self, ship: Ship, coord: Coordinate) -> None:
        """Drop a hit cell from the ship and from the occupancy index together."""
        ship.hit(coord)
        self.occupancy.pop(coord, None)
        SHOT_COUNTER.add(1, attributes={"owner": self.owner})

    def remaining_ship_count(self) -> int:
        """Number of live ship cells left; zero means the owner has lost."""
        return len(self.occupancy)

    def neighbours(self, coord: Coordinate) -> Iterable[Coordinate]:
        """Yield the in-bounds 8-neighbourhood of ``coord``."""
        for delta_x in (-1, 0, 1):
            for delta_y in (-1, 0, 1):
                if delta_x == 0 and delta_y == 0:
                    continue
                neighbour = Coordinate(coord.x + delta_x, coord.y + delta_y)
                if neighbour.in_bounds(self.size):
                    yield neighbour

    def untried(self) -> Iterable[Coordinate]:
        """Yield coordinates not yet fired at, x outer and y inner."""
        for x in range(self.size):
            for y in range(self.size):
                coord = Coordinate(x, y)
                if coord not in self.tried:
                    yield coord
