"""Game session engine: ships, boards, shot resolution and sessions."""

from .attack import Resolution, ShotOutcome, ShotStatus, resolve
from .board import Board, expand_placement, validate_placement
from .instrumented_session import InstrumentedGameSession
from .session import AttackReport, GamePhase, GameSession
from .ship import BOARD_SIZE, Coordinate, Ship, ShipPlacement, ShipType, describe_ship

__all__ = [
    "AttackReport",
    "BOARD_SIZE",
    "Board",
    "Coordinate",
    "GamePhase",
    "GameSession",
    "InstrumentedGameSession",
    "Resolution",
    "Ship",
    "ShipPlacement",
    "ShipType",
    "ShotOutcome",
    "ShotStatus",
    "describe_ship",
    "expand_placement",
    "resolve",
    "validate_placement",
]
