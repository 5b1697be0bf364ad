"""Player identities and the pre-game lobby."""

from .players import Player, PlayerRegistry
from .rooms import Room, RoomRegistry, RoomState

__all__ = ["Player", "PlayerRegistry", "Room", "RoomRegistry", "RoomState"]
