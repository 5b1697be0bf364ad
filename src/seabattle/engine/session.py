"""Two-player Sea Battle game session."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from seabattle.errors import BoardExhausted, InvalidSlot, NotYourTurn, WrongPhase
from seabattle.telemetry import get_meter, get_tracer

from .attack import ShotOutcome, resolve
from .board import Board
from .ship import Coordinate, Ship, ShipPlacement

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.session")
meter = get_meter("seabattle.engine.session")

MOVE_COUNTER = meter.create_counter(
    "seabattle_engine_moves",
    unit="1",
    description="Number of attacks accepted by GameSession",
)

SLOTS = (0, 1)


class GamePhase(Enum):
    """High-level lifecycle of a game session."""

    AWAITING_FLEETS = "awaiting_fleets"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass(frozen=True)
class AttackReport:
    """What one accepted attack did, for the router to fan out."""

    attacker: int
    outcomes: tuple[ShotOutcome, ...]
    current_turn: int
    winner: int | None = None

    @property
    def finished(self) -> bool:
        return self.winner is not None


class GameSession:
    """Couples two boards with a turn pointer and a lifecycle phase.

    Slots 0 and 1 are session-local: slot 0 is the room's first member and
    slot 1 the second. Each board holds its owner's fleet and the shots its
    owner has fired at the opponent.
    """

    def __init__(
        self,
        game_id: str,
        players: tuple[str, str],
        rng: random.Random | None = None,
        on_win: Callable[[str], None] | None = None,
    ) -> None:
        self.id = game_id
        self.players = players
        self.boards: tuple[Board, Board] = (
            Board(owner=f"{game_id}:0"),
            Board(owner=f"{game_id}:1"),
        )
        self.phase: GamePhase = GamePhase.AWAITING_FLEETS
        self.current_turn: int = 0
        self.winner: int | None = None
        self._rng = rng or random.Random()
        self._on_win = on_win

    @staticmethod
    def opponent(slot: int) -> int:
        return 1 - slot

    def player_slot(self, identity: str) -> int | None:
        """Return the slot ``identity`` occupies, if any."""
        for slot in SLOTS:
            if self.players[slot] == identity:
                return slot
        return None

    def fleet(self, slot: int) -> list[Ship]:
        self._check_slot(slot)
        return list(self.boards[slot].ships)

    def submit_fleet(self, slot: int, placements: Sequence[ShipPlacement]) -> bool:
        """Place ``slot``'s fleet; return True when this submission starts the game.

        A second submission before the game starts replaces the first one.
        """
        with tracer.start_as_current_span("session.submit_fleet") as span:
            span.set_attribute("game.id", self.id)
            span.set_attribute("slot", slot)
            self._check_slot(slot)
            if self.phase is not GamePhase.AWAITING_FLEETS:
                logger.error(
                    "fleet_rejected_game_started",
                    extra={"game_id": self.id, "slot": slot, "phase": self.phase.value},
                )
                raise WrongPhase("Fleet cannot change once the game has started")

            self.boards[slot].place(placements)
            if not all(board.has_fleet() for board in self.boards):
                return False

            self.phase = GamePhase.IN_PROGRESS
            self.current_turn = self._rng.choice(SLOTS)
            span.set_attribute("current_turn", self.current_turn)
            logger.info(
                "game_started",
                extra={"game_id": self.id, "current_turn": self.current_turn},
            )
            return True

    def attack(self, slot: int, coord: Coordinate) -> AttackReport:
        """Fire at the opponent's board, enforcing phase, turn order and win."""
        with tracer.start_as_current_span("session.attack") as span:
            span.set_attribute("game.id", self.id)
            span.set_attribute("slot", slot)
            span.set_attribute("x", coord.x)
            span.set_attribute("y", coord.y)
            self._check_slot(slot)
            if self.phase is not GamePhase.IN_PROGRESS:
                logger.error(
                    "attack_rejected_game_not_in_progress",
                    extra={"game_id": self.id, "slot": slot, "phase": self.phase.value},
                )
                raise WrongPhase("Game is not in progress")
            if slot != self.current_turn:
                logger.warning(
                    "attack_rejected_wrong_player",
                    extra={"game_id": self.id, "slot": slot, "current": self.current_turn},
                )
                raise NotYourTurn(slot, self.current_turn)

            opponent = self.opponent(slot)
            target_board = self.boards[opponent]
            resolution = resolve(self.boards[slot], target_board, coord)
            if resolution.passes_turn:
                self.current_turn = opponent

            MOVE_COUNTER.add(1, attributes={"result": resolution.status.value})
            if target_board.remaining_ship_count() == 0:
                self._finish(slot)
                span.set_attribute("game.winner", slot)
            else:
                span.set_attribute("next_player", self.current_turn)

            return AttackReport(
                attacker=slot,
                outcomes=resolution.outcomes,
                current_turn=self.current_turn,
                winner=self.winner,
            )

    def pick_target(self, slot: int) -> Coordinate:
        """First coordinate ``slot`` has not fired at, x outer and y inner."""
        self._check_slot(slot)
        for coord in self.boards[slot].untried():
            return coord
        raise BoardExhausted()

    def auto_attack(self, slot: int) -> AttackReport:
        return self.attack(slot, self.pick_target(slot))

    def close(self) -> None:
        """Called when the lobby discards an unfinished session."""
        if self.phase is not GamePhase.FINISHED:
            logger.info("game_abandoned", extra={"game_id": self.id, "phase": self.phase.value})

    def _finish(self, slot: int) -> None:
        self.winner = slot
        self.phase = GamePhase.FINISHED
        logger.info(
            "game_finished",
            extra={"game_id": self.id, "winner": slot, "identity": self.players[slot]},
        )
        if self._on_win is not None:
            self._on_win(self.players[slot])

    def _check_slot(self, slot: int) -> None:
        if slot not in SLOTS or isinstance(slot, bool):
            raise InvalidSlot(slot)
