import asyncio
from datetime import datetime
from typing import Any, Callable, NamedTuple, Optional

import pytest

from toxgate.util import SubclassableOnce

SubclassableOnce.TEST_MODE = True

from toxgate.core import ContactList, Preferences, SessionHub, ToxSession  # noqa: E402
from toxgate.core.identity import PeerIdentity  # noqa: E402
from toxgate.network import ToxNetwork, UserStatus  # noqa: E402

OWN_KEY = bytes(range(32))
PEER_KEY = bytes(range(32, 64))
OTHER_KEY = bytes(range(64, 96))


class FakeNetwork(ToxNetwork):
    def __init__(self, public_key: bytes = OWN_KEY):
        super().__init__()
        self._public_key = public_key
        self.connected = False
        self.friends: dict[int, bytes] = {}
        self.statuses: dict[int, UserStatus] = {}
        self.online: set[int] = set()
        self.names: dict[int, str] = {}
        self.name = ""
        self.user_status: Optional[UserStatus] = None
        self.status_message: Optional[str] = None
        self.bootstrapped: list[tuple[str, int, bytes]] = []
        self.requests_sent: list[tuple[bytes, bytes]] = []
        self.norequest_adds: list[bytes] = []
        self.deleted: list[int] = []
        self.sent: list[tuple[int, str]] = []
        self.add_friend_result: Optional[int] = None
        self.state = b""
        self.loaded: Optional[bytes] = None
        self.pumps = 0
        self.closed = False
        self.__next_handle = 0

    def make_friend(self, public_key: bytes) -> int:
        handle = self.__next_handle
        self.__next_handle += 1
        self.friends[handle] = public_key
        return handle

    @property
    def self_public_key(self) -> bytes:
        return self._public_key

    def bootstrap(self, address, port, public_key):
        self.bootstrapped.append((address, port, public_key))

    def pump(self):
        self.pumps += 1

    def is_connected(self):
        return self.connected

    def add_friend(self, public_key, message):
        self.requests_sent.append((public_key, message))
        if self.add_friend_result is not None:
            return self.add_friend_result
        return self.make_friend(public_key)

    def add_friend_norequest(self, public_key):
        self.norequest_adds.append(public_key)
        if self.add_friend_result is not None:
            return self.add_friend_result
        return self.make_friend(public_key)

    def del_friend(self, handle):
        self.deleted.append(handle)
        self.friends.pop(handle, None)

    def set_user_status(self, status):
        self.user_status = status

    def set_status_message(self, text):
        self.status_message = text

    def set_name(self, name):
        self.name = name

    def get_self_name(self):
        return self.name

    def get_friend_name(self, handle):
        return self.names.get(handle)

    def get_friend_status(self, handle):
        return self.statuses.get(handle, UserStatus.NONE)

    def is_friend_connected(self, handle):
        return handle in self.online

    def get_friend_handle(self, public_key):
        for handle, key in self.friends.items():
            if key == public_key:
                return handle
        return None

    def get_friend_public_key(self, handle):
        return self.friends.get(handle)

    def send_message(self, handle, text):
        if handle not in self.friends:
            return False
        self.sent.append((handle, text))
        return True

    def save(self):
        return self.state

    def load(self, data):
        self.loaded = self.state = data

    def close(self):
        self.closed = True


class Prompt(NamedTuple):
    title: str
    primary: str
    secondary: Optional[str]
    on_yes: Callable[[], None]
    on_no: Callable[[], None]


class FakeContactList(ContactList):
    def __init__(self):
        self.entries: dict[str, Optional[str]] = {}
        self.added: list[tuple[str, Optional[str]]] = []
        self.presences: list[tuple[str, str, Optional[str]]] = []
        self.messages: list[tuple[str, str, Optional[datetime]]] = []
        self.prompts: list[Prompt] = []
        self.errors: list[tuple[str, str]] = []
        self.progress: list[tuple[str, int, int]] = []
        self.display_identity: Optional[str] = None
        self.display_name: Optional[str] = None

    def last_status(self, identifier: str) -> Optional[str]:
        for who, status_id, _ in reversed(self.presences):
            if who == identifier:
                return status_id
        return None

    def has_contact(self, identifier):
        return identifier in self.entries

    def contacts(self):
        return list(self.entries)

    def add_contact(self, identifier, alias=None):
        self.added.append((identifier, alias))
        self.entries[identifier] = alias

    def remove_contact(self, identifier):
        self.entries.pop(identifier, None)

    def set_alias(self, identifier, alias):
        self.entries[identifier] = alias

    def push_presence(self, identifier, status_id, message=None):
        self.presences.append((identifier, status_id, message))

    def deliver_message(self, identifier, text, when=None):
        self.messages.append((identifier, text, when))

    def request_yes_no(self, title, primary, secondary, on_yes, on_no):
        self.prompts.append(Prompt(title, primary, secondary, on_yes, on_no))

    def abandon_prompts(self):
        self.prompts.clear()

    def notify_error(self, title, text):
        self.errors.append((title, text))

    def update_progress(self, text, step, total):
        self.progress.append((text, step, total))

    def set_display_identity(self, identifier):
        self.display_identity = identifier

    def set_display_name(self, name):
        self.display_name = name


class FakePreferences(Preferences):
    def __init__(self, **kwargs):
        self.values: dict[str, Any] = dict(kwargs)

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set(self, key, value):
        self.values[key] = value


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.run_until_complete(asyncio.sleep(0))
    loop.close()


@pytest.fixture
def hub():
    return SessionHub()


@pytest.fixture
def network():
    return FakeNetwork(OWN_KEY)


@pytest.fixture
def make_session(loop, hub):
    def make(account_name: str, network: FakeNetwork, preferences=None):
        return ToxSession(
            account_name,
            lambda: network,
            FakeContactList(),
            preferences or FakePreferences(),
            hub,
            loop,
        )

    return make


@pytest.fixture
def session(make_session, network):
    return make_session("romeo@montague.lit", network)


@pytest.fixture
def logged(session, loop):
    loop.run_until_complete(session.login())
    yield session
    loop.run_until_complete(session.logout())


@pytest.fixture
def connected(logged, network):
    network.connected = True
    logged.probe()
    return logged


@pytest.fixture
def peer():
    return PeerIdentity(PEER_KEY)
