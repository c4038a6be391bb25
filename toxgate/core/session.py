import asyncio
import base64
import binascii
import logging
from enum import Enum
from typing import Callable, Optional

from ..network import ToxNetwork
from ..util.error import AlreadyLoggedIn, InvalidIdentityEncoding, NetworkInitError
from ..util.util import timeit
from . import config
from .contact_list import ContactList, Preferences
from .hub import SessionHub
from .identity import PeerIdentity
from .offline import OfflineMessageQueue
from .presence import PresenceSync
from .registry import ContactRegistry
from .requests import FriendRequests
from .status import CanonicalStatus


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ToxSession:
    """
    One account logged in to the Tox network.

    Owns the network library instance for the duration of a login, and drives
    it with two independent repeating tasks: the library's event pump and the
    DHT connection probe.
    """

    def __init__(
        self,
        account_name: str,
        network_factory: Callable[[], ToxNetwork],
        contact_list: ContactList,
        preferences: Preferences,
        hub: SessionHub,
        loop: asyncio.AbstractEventLoop,
    ):
        self.account_name = account_name
        self.log = logging.getLogger(account_name)
        self.network_factory = network_factory
        self.contact_list = contact_list
        self.preferences = preferences
        self.hub = hub
        self.loop = loop

        self.state = ConnectionState.DISCONNECTED
        self.status = CanonicalStatus.ONLINE
        self.status_message: Optional[str] = None
        self.__network: Optional[ToxNetwork] = None
        self.__tasks = set[asyncio.Task]()

        self.registry = ContactRegistry(self)
        self.presence = PresenceSync(self)
        self.requests = FriendRequests(self)
        self.offline = OfflineMessageQueue()

    def __repr__(self):
        return f"<Session of {self.account_name}>"

    @property
    def network(self) -> ToxNetwork:
        if self.__network is None:
            raise RuntimeError("Not logged in", self)
        return self.__network

    @property
    def logged(self) -> bool:
        return self.state != ConnectionState.DISCONNECTED

    @property
    def own_identity(self) -> Optional[PeerIdentity]:
        if self.__network is None:
            return None
        return PeerIdentity.from_bytes(self.__network.self_public_key)

    def __remove_task(self, task):
        self.log.debug("Removing task %s", task)
        self.__tasks.discard(task)

    def create_task(self, coro) -> asyncio.Task:
        task = self.loop.create_task(coro)
        self.__tasks.add(task)
        self.log.debug("Creating task %s", task)
        task.add_done_callback(self.__remove_task)
        return task

    def cancel_all_tasks(self):
        for task in list(self.__tasks):
            task.cancel()

    @timeit
    async def login(self):
        """
        Start the network library and join the Tox network.

        Returns as soon as the bootstrap request is sent; the session becomes
        connected later, when the probe sees the DHT connection.

        :raises AlreadyLoggedIn: if this account is already logged in
        :raises NetworkInitError: if the network library could not start
        """
        if self.logged:
            raise AlreadyLoggedIn(f"{self.account_name} is already logged in")
        self.hub.add(self)

        self.log.debug("Logging in...")
        try:
            network = self.network_factory()
        except NetworkInitError:
            self.log.error("Fatal error, could not start the network library")
            self.hub.remove(self)
            raise
        self.__network = network
        try:
            self.__register_handlers(network)
            self.__restore_state(network)
            self.contact_list.update_progress("Connecting", 0, 2)
            self.__bootstrap(network)
        except BaseException:
            self.log.exception("Login failed")
            self.__teardown(network)
            raise
        self.state = ConnectionState.CONNECTING

        self.create_task(self.__every(config.PUMP_INTERVAL, self.pump))
        self.create_task(self.__every(config.PROBE_INTERVAL, self.probe))

    async def logout(self):
        if not self.logged:
            self.log.debug("Not logged in, nothing to do")
            return
        self.log.debug("Closing!")
        network = self.network
        self.status = CanonicalStatus.OFFLINE
        self.status_message = None
        self.hub.broadcast(self)

        self.__save_state(network)
        self.log.debug("Shutting down")
        self.cancel_all_tasks()
        self.__teardown(network)

    def __teardown(self, network: ToxNetwork):
        self.hub.remove(self)
        self.requests.abandon()
        self.registry.clear()
        network.del_event_handlers()
        network.close()
        self.__network = None
        self.state = ConnectionState.DISCONNECTED

    def __register_handlers(self, network: ToxNetwork):
        network.add_event_handler("friend_message", self.presence.on_friend_message)
        network.add_event_handler("name_change", self.presence.on_name_change)
        network.add_event_handler("user_status", self.presence.on_user_status)
        network.add_event_handler("friend_request", self.requests.on_friend_request)
        network.add_event_handler(
            "connection_status", self.presence.on_connection_status
        )
        self.log.debug("Initialized tox callbacks")

    def __bootstrap(self, network: ToxNetwork):
        try:
            key = PeerIdentity.from_hex(config.DHT_SERVER_KEY)
        except InvalidIdentityEncoding as e:
            self.log.error("Cannot bootstrap: %s", e)
            self.contact_list.notify_error("Error", f"Invalid DHT server key: {e}")
            return
        self.log.info(
            "Will connect to %s:%s (%s)",
            config.DHT_SERVER,
            config.DHT_SERVER_PORT,
            key,
        )
        network.bootstrap(config.DHT_SERVER, config.DHT_SERVER_PORT, key.public_key)

    def __restore_state(self, network: ToxNetwork):
        encoded = self.preferences.get("messenger")
        if not encoded:
            self.log.debug("No saved network state")
            return
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            self.log.warning("Could not decode the saved network state: %s", e)
            return
        if data:
            self.log.debug("Restoring %s bytes of network state", len(data))
            network.load(data)

    def __save_state(self, network: ToxNetwork):
        self.preferences.set("messenger", base64.b64encode(network.save()).decode())

    async def __every(self, interval: float, func: Callable[[], None]):
        while True:
            await asyncio.sleep(interval)
            try:
                func()
            except Exception as e:
                self.log.exception("Error in %s", func.__name__, exc_info=e)

    def pump(self):
        self.log.trace("Pump")
        self.network.pump()

    def probe(self):
        connected = self.network.is_connected()
        if self.state == ConnectionState.CONNECTING and connected:
            self.__on_connected()
        elif self.state == ConnectionState.CONNECTED and not connected:
            self.log.info("DHT not connected!")
            self.state = ConnectionState.CONNECTING
            self.contact_list.update_progress("Connecting", 0, 2)

    def __on_connected(self):
        self.state = ConnectionState.CONNECTED
        self.contact_list.update_progress("Connected", 1, 2)
        self.log.info("DHT connected!")

        own_id = str(self.own_identity)
        self.log.info("My ID: %s", own_id)
        self.contact_list.set_display_identity(own_id)

        self.presence.query_all()
        self.__reconcile_nickname()
        self.hub.broadcast(self, mutual=True)

    def __reconcile_nickname(self):
        network_name = self.network.get_self_name() or ""
        nick = self.preferences.get("nickname")
        if not nick:
            if network_name:
                self.contact_list.set_display_name(network_name)
                self.preferences.set("nickname", network_name)
            return
        self.contact_list.set_display_name(nick)
        if nick != network_name:
            self.network.set_name(nick)

    def set_nickname(self, nickname: str):
        self.contact_list.set_display_name(nickname)
        self.network.set_name(nickname)
        self.preferences.set("nickname", nickname)
