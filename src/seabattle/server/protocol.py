"""Wire models for the JSON envelope protocol.

Every frame, in both directions, is ``{"type": str, "data": str, "id": 0}``
where ``data`` is itself a JSON document holding the command payload.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from seabattle.engine import Coordinate, Ship, ShipPlacement, ShipType, describe_ship
from seabattle.errors import ValidationError


def _stringify_id(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _digit_slot(value: Any) -> Any:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


EntityId = Annotated[str, BeforeValidator(_stringify_id), Field(min_length=1)]
SlotIndex = Annotated[int, BeforeValidator(_digit_slot), Field(strict=True)]
BoardIndex = Annotated[int, Field(ge=0, le=9)]

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class Envelope(BaseModel):
    model_config = ConfigDict(strict=True)

    type: str
    data: str
    id: Literal[0]


# ---------------------------------------------------------------- inbound


class RegRequest(BaseModel):
    name: str | None = None
    password: str | None = None


class JoinRoomRequest(BaseModel):
    indexRoom: EntityId


class Position(BaseModel):
    x: int | float
    y: int | float


class ShipPayload(BaseModel):
    position: Position
    direction: bool
    length: int | float
    type: ShipType = ShipType.SMALL

    def to_placement(self) -> ShipPlacement:
        return ShipPlacement(
            x=self.position.x,
            y=self.position.y,
            vertical=self.direction,
            length=self.length,
            ship_type=self.type,
        )

    @classmethod
    def from_ship(cls, ship: Ship) -> "ShipPayload":
        anchor, vertical, length = describe_ship(ship)
        return cls(
            position=Position(x=anchor.x, y=anchor.y),
            direction=vertical,
            length=length,
            type=ship.ship_type,
        )


class AddShipsRequest(BaseModel):
    gameId: EntityId
    ships: list[ShipPayload]
    indexPlayer: SlotIndex | None = None


class AttackRequest(BaseModel):
    gameId: EntityId
    x: BoardIndex
    y: BoardIndex
    indexPlayer: SlotIndex | None = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.x, self.y)


class RandomAttackRequest(BaseModel):
    gameId: EntityId
    indexPlayer: SlotIndex | None = None


# --------------------------------------------------------------- outbound


class RegResponse(BaseModel):
    name: str | None = None
    index: str | None = None
    error: bool = False
    errorText: str = ""


class RoomUser(BaseModel):
    name: str
    index: str


class RoomListItem(BaseModel):
    roomId: str
    roomUsers: list[RoomUser]


class WinnerEntry(BaseModel):
    name: str
    wins: int


class CreateGame(BaseModel):
    idGame: str
    idPlayer: int


class StartGame(BaseModel):
    ships: list[ShipPayload]
    currentPlayerIndex: int


class TurnInfo(BaseModel):
    currentPlayer: int


class CellPosition(BaseModel):
    x: int
    y: int


class AttackFeedback(BaseModel):
    position: CellPosition
    currentPlayer: int
    status: Literal["miss", "shot", "killed", "repeat"]


class FinishInfo(BaseModel):
    winPlayer: int


# ---------------------------------------------------------------- codecs


def _jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, (list, tuple)):
        return [_jsonable(item) for item in payload]
    return payload


def encode(message_type: str, payload: Any) -> str:
    """Serialise an outbound event into an envelope frame."""
    data = "" if payload is None else json.dumps(_jsonable(payload))
    return Envelope(type=message_type, data=data, id=0).model_dump_json()


def decode_envelope(raw: str | bytes) -> Envelope:
    try:
        return Envelope.model_validate_json(raw)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid envelope (expected type,data,id)") from exc


def decode_payload(model: type[PayloadT], data: str) -> PayloadT:
    """Parse the nested JSON ``data`` string of an envelope into ``model``."""
    try:
        return model.model_validate_json(data)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        raise ValidationError(f"Invalid {model.__name__} payload: {fields or 'malformed JSON'}") from exc
