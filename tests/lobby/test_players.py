"""Player identity registry."""

import pytest
from seabattle.errors import InvalidCredentials, ValidationError
from seabattle.lobby.players import PlayerRegistry


def test_obtain_creates_then_logs_in() -> None:
    registry = PlayerRegistry()
    created = registry.obtain("alice", "secret")
    again = registry.obtain("alice", "secret")
    assert again is created
    assert len(registry) == 1


def test_wrong_password_is_rejected() -> None:
    registry = PlayerRegistry()
    registry.obtain("alice", "secret")
    with pytest.raises(InvalidCredentials):
        registry.obtain("alice", "guess")


@pytest.mark.parametrize(("name", "password"), [("", "secret"), ("alice", "")])
def test_missing_credentials(name: str, password: str) -> None:
    with pytest.raises(ValidationError):
        PlayerRegistry().obtain(name, password)


def test_identities_are_stable_and_distinct() -> None:
    ids = iter(["p-1", "p-2"])
    registry = PlayerRegistry(id_factory=lambda: next(ids))
    assert registry.obtain("alice", "a").identity == "p-1"
    assert registry.obtain("bob", "b").identity == "p-2"
    assert registry.obtain("alice", "a").identity == "p-1"


def test_winners_are_ranked_by_wins() -> None:
    registry = PlayerRegistry()
    alice = registry.obtain("alice", "a")
    bob = registry.obtain("bob", "b")
    registry.record_win(bob.identity)
    registry.record_win(bob.identity)
    registry.record_win(alice.identity)
    registry.record_win("nobody")
    assert registry.winners() == [("bob", 2), ("alice", 1)]
