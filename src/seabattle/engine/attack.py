"""Shot resolution: hit, miss, sink, surrounding reveal and turn policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from seabattle.telemetry import get_meter, get_tracer

from .board import Board
from .ship import Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.attack")
meter = get_meter("seabattle.engine.attack")

SHOT_COUNTER = meter.create_counter(
    "seabattle_engine_shots",
    unit="1",
    description="Shots resolved, by outcome",
)


class ShotStatus(Enum):
    """Outcome of a single cell; values are the protocol status strings."""

    REPEAT = "repeat"
    MISS = "miss"
    HIT = "shot"
    SUNK = "killed"


@dataclass(frozen=True)
class ShotOutcome:
    coord: Coordinate
    status: ShotStatus


@dataclass(frozen=True)
class Resolution:
    """Ordered outcomes of one shot and whether the turn passes to the defender."""

    outcomes: tuple[ShotOutcome, ...]
    passes_turn: bool

    @property
    def status(self) -> ShotStatus:
        """Status of the cell actually fired at."""
        return self.outcomes[0].status


def resolve(attacker: Board, defender: Board, coord: Coordinate) -> Resolution:
    """Fire ``attacker``'s shot at ``coord`` on ``defender``'s board.

    A coordinate the attacker already tried is answered with a single
    ``REPEAT`` and changes nothing. A miss passes the turn; a hit or a sink
    keeps it with the attacker. Sinking a ship reports every one of its
    cells as ``SUNK`` followed by a ``MISS`` for each surrounding cell that
    is not part of a live ship, and those cells are marked as tried.
    """
    with tracer.start_as_current_span("attack.resolve") as span:
        span.set_attribute("shot.x", coord.x)
        span.set_attribute("shot.y", coord.y)
        span.set_attribute("board.owner", defender.owner)

        if attacker.record_shot(coord):
            span.set_attribute("shot.outcome", ShotStatus.REPEAT.value)
            SHOT_COUNTER.add(1, attributes={"outcome": ShotStatus.REPEAT.value})
            logger.info("shot_repeat", extra={"x": coord.x, "y": coord.y, "owner": defender.owner})
            return Resolution((ShotOutcome(coord, ShotStatus.REPEAT),), passes_turn=False)

        ship = defender.ship_at(coord)
        if ship is None:
            span.set_attribute("shot.outcome", ShotStatus.MISS.value)
            SHOT_COUNTER.add(1, attributes={"outcome": ShotStatus.MISS.value})
            logger.info("shot_miss", extra={"x": coord.x, "y": coord.y, "owner": defender.owner})
            return Resolution((ShotOutcome(coord, ShotStatus.MISS),), passes_turn=True)

        defender.remove_cell(ship, coord)
        if not ship.is_sunk():
            span.set_attribute("shot.outcome", ShotStatus.HIT.value)
            SHOT_COUNTER.add(1, attributes={"outcome": ShotStatus.HIT.value})
            logger.info(
                "shot_hit",
                extra={"x": coord.x, "y": coord.y, "ship_id": ship.id, "owner": defender.owner},
            )
            return Resolution((ShotOutcome(coord, ShotStatus.HIT),), passes_turn=False)

        outcomes = [ShotOutcome(cell, ShotStatus.SUNK) for cell in ship.original_cells]
        own_cells = set(ship.original_cells)
        visited: set[Coordinate] = set()
        for cell in ship.original_cells:
            for neighbour in defender.neighbours(cell):
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                if neighbour in own_cells or neighbour in defender.occupancy:
                    continue
                outcomes.append(ShotOutcome(neighbour, ShotStatus.MISS))
                attacker.tried.add(neighbour)

        span.set_attribute("shot.outcome", ShotStatus.SUNK.value)
        span.set_attribute("shot.revealed", len(outcomes) - len(own_cells))
        SHOT_COUNTER.add(1, attributes={"outcome": ShotStatus.SUNK.value})
        logger.info(
            "shot_sunk",
            extra={
                "x": coord.x,
                "y": coord.y,
                "ship_id": ship.id,
                "revealed": len(outcomes) - len(own_cells),
                "owner": defender.owner,
            },
        )
        return Resolution(tuple(outcomes), passes_turn=False)
