import pytest

from blacklistbot.banstore import BanStore
from blacklistbot.config import BotRuntimeConfig
from blacklistbot.dispatcher import EventDispatcher
from blacklistbot.moderation import ModerationEngine


class FakeRoom:
    """Records what handlers send instead of talking to a server."""

    def __init__(self, room_id: str = "lobby") -> None:
        self.id = room_id
        self.sent: list[tuple[str, str]] = []
        self.replies: list[str] = []

    def send(self, action: str, payload: str) -> None:
        self.sent.append((action, payload))

    def reply(self, text: str) -> None:
        self.replies.append(text)


@pytest.fixture
def make_room():
    return FakeRoom


@pytest.fixture
def room() -> FakeRoom:
    return FakeRoom("lobby")


@pytest.fixture
def store() -> BanStore:
    return BanStore()


@pytest.fixture
def config() -> BotRuntimeConfig:
    return BotRuntimeConfig(nickname="Usain Bot", banlist_path="unused.cbor")


@pytest.fixture
def dispatcher(config: BotRuntimeConfig, store: BanStore) -> EventDispatcher:
    return EventDispatcher(config, ModerationEngine(store))
