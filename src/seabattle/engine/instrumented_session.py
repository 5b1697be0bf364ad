"""Game session with a per-game span and completion metrics."""

from __future__ import annotations

import time
from typing import Sequence

from opentelemetry.trace import Span, Status, StatusCode

from seabattle.engine.attack import ShotStatus
from seabattle.engine.session import AttackReport, GamePhase, GameSession
from seabattle.engine.ship import Coordinate, ShipPlacement
from seabattle.errors import SeaBattleError
from seabattle.telemetry import get_logger, get_tracer, record_game_duration, record_game_metric


class InstrumentedGameSession(GameSession):
    """Wraps GameSession with tracing, metrics, and logging."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("seabattle.engine")
        self._tracer = get_tracer("seabattle.engine")
        self._game_span: Span | None = None
        self._game_start_time: float | None = None
        self._shots = 0

    def submit_fleet(self, slot: int, placements: Sequence[ShipPlacement]) -> bool:
        started = super().submit_fleet(slot, placements)
        if started:
            self._start_game_span()
            record_game_metric(
                "seabattle_game_started_total",
                1,
                {
                    "player0_ships": len(self.boards[0].ships),
                    "player1_ships": len(self.boards[1].ships),
                },
            )
            self._logger.info("Game %s started, slot %d moves first", self.id, self.current_turn)
        return started

    def attack(self, slot: int, coord: Coordinate) -> AttackReport:
        with self._tracer.start_as_current_span("seabattle.engine.attack") as span:
            span.set_attribute("game.id", self.id)
            span.set_attribute("slot", slot)
            span.set_attribute("coord.x", coord.x)
            span.set_attribute("coord.y", coord.y)

            try:
                report = super().attack(slot, coord)
            except SeaBattleError as exc:
                record_game_metric(
                    "seabattle_game_rejected_attacks_total",
                    1,
                    {"slot": slot, "reason": type(exc).__name__},
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.warning("Rejected attack from slot %d at (%d,%d): %s", slot, coord.x, coord.y, exc)
                raise

            status = report.outcomes[0].status
            if status is not ShotStatus.REPEAT:
                self._shots += 1
            span.set_attribute("shot_outcome", status.name)
            span.set_attribute("outcomes", len(report.outcomes))
            record_game_metric("seabattle_shots_total", 1, {"slot": slot})
            record_game_metric(
                "seabattle_shots_by_result_total",
                1,
                {"slot": slot, "result": status.value},
            )

            if self.phase is GamePhase.FINISHED and report.winner is not None:
                span.set_attribute("winner", report.winner)
                self._finish_game()

            return report

    def close(self) -> None:
        super().close()
        if self._game_span is not None:
            self._game_span.set_attribute("abandoned", True)
            self._game_span.set_status(Status(StatusCode.ERROR, "abandoned"))
            record_game_metric("seabattle_game_abandoned_total", 1, {"shots": self._shots})
        self._end_game_span()

    def _start_game_span(self) -> None:
        # not made current: fleets and shots arrive from different connection tasks
        self._end_game_span()
        self._game_start_time = time.perf_counter()
        self._game_span = self._tracer.start_span("seabattle.engine.game")
        self._game_span.set_attribute("game.id", self.id)
        self._game_span.set_attribute("current_turn", self.current_turn)

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        winner = str(self.winner)

        record_game_metric("seabattle_game_completed_total", 1, {"winner": winner})
        record_game_duration("seabattle_game_duration_seconds", duration, {"winner": winner})

        with self._tracer.start_as_current_span("seabattle.engine.game_complete") as span:
            span.set_attribute("game.id", self.id)
            span.set_attribute("winner", winner)
            span.set_attribute("shots", self._shots)
            span.set_attribute("duration_ms", duration * 1000)

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("shots", self._shots)

        self._logger.info("Game %s finished. Winner=%s shots=%d duration_s=%.3f", self.id, winner, self._shots, duration)
        self._end_game_span()

    def _end_game_span(self) -> None:
        if self._game_span is not None:
            self._game_span.end()
            self._game_span = None
