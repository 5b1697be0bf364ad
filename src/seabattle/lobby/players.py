"""In-memory player identities and win counters."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from seabattle.errors import InvalidCredentials, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class Player:
    identity: str
    name: str
    password: str
    wins: int = 0


class PlayerRegistry:
    """Obtain-or-create player identities keyed by name.

    Passwords are opaque secrets compared for equality.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._players: dict[str, Player] = {}
        self._by_name: dict[str, str] = {}
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    def __len__(self) -> int:
        return len(self._players)

    def obtain(self, name: str, password: str) -> Player:
        """Log in ``name``, registering it first if it is unknown."""
        if not name or not password:
            raise ValidationError("Missing name or password")

        identity = self._by_name.get(name)
        if identity is None:
            player = Player(identity=self._new_id(), name=name, password=password)
            self._players[player.identity] = player
            self._by_name[name] = player.identity
            logger.info("player_registered", extra={"player": player.identity, "player_name": name})
            return player

        player = self._players[identity]
        if player.password != password:
            logger.warning("player_login_failed", extra={"player": identity, "player_name": name})
            raise InvalidCredentials()
        logger.info("player_logged_in", extra={"player": identity, "player_name": name})
        return player

    def get(self, identity: str) -> Player | None:
        return self._players.get(identity)

    def name_of(self, identity: str) -> str:
        player = self._players.get(identity)
        return player.name if player else "unknown"

    def record_win(self, identity: str) -> None:
        player = self._players.get(identity)
        if player is None:
            return
        player.wins += 1
        logger.info("player_won", extra={"player": identity, "wins": player.wins})

    def winners(self) -> list[tuple[str, int]]:
        """``(name, wins)`` for every player, most wins first."""
        ranked = sorted(self._players.values(), key=lambda player: -player.wins)
        return [(player.name, player.wins) for player in ranked]
