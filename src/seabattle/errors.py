"""Exceptions raised by the Sea Battle engine, lobby and protocol layers."""

from __future__ import annotations


class SeaBattleError(Exception):
    """Base class for every recoverable, per-request failure."""


class AuthenticationRequired(SeaBattleError):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ValidationError(SeaBattleError):
    """Malformed envelope, payload or JSON."""


class UnknownCommand(SeaBattleError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command


class InvalidCredentials(SeaBattleError):
    def __init__(self, message: str = "Invalid password") -> None:
        super().__init__(message)


class InvalidPlacement(SeaBattleError, ValueError):
    """A submitted fleet failed placement validation."""


class InvalidShipShape(InvalidPlacement):
    pass


class OutOfBounds(InvalidPlacement):
    pass


class OverlappingShips(InvalidPlacement):
    pass


class RoomNotFound(SeaBattleError):
    def __init__(self, room_id: str) -> None:
        super().__init__("Room not found")
        self.room_id = room_id


class RoomFull(SeaBattleError):
    def __init__(self, room_id: str) -> None:
        super().__init__("Room is full")
        self.room_id = room_id


class AlreadyInRoom(SeaBattleError):
    def __init__(self, room_id: str) -> None:
        super().__init__("Room already contains this user")
        self.room_id = room_id


class SessionNotFound(SeaBattleError):
    def __init__(self, game_id: str) -> None:
        super().__init__("Game not found")
        self.game_id = game_id


class InvalidSlot(SeaBattleError):
    def __init__(self, slot: object) -> None:
        super().__init__(f"Invalid indexPlayer: {slot}")
        self.slot = slot


class WrongPhase(SeaBattleError):
    """The session is not in a phase that accepts the operation."""


class NotYourTurn(SeaBattleError):
    def __init__(self, slot: int, current_turn: int) -> None:
        super().__init__("It is not this player's turn")
        self.slot = slot
        self.current_turn = current_turn


class BoardExhausted(SeaBattleError):
    def __init__(self) -> None:
        super().__init__("No available coords to attack")
