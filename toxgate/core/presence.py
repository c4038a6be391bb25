import logging
from typing import TYPE_CHECKING, Optional

from ..network import UserStatus
from ..util.error import HandleResolutionFailure
from .identity import PeerIdentity
from .status import (
    CanonicalStatus,
    derive_canonical,
    to_canonical_from_local_id,
    to_local_status_id,
    to_network_status,
)

if TYPE_CHECKING:
    from .session import ToxSession


class PresenceSync:
    """
    Translates network events into contact-list updates, and local status
    changes into network calls.
    """

    def __init__(self, session: "ToxSession"):
        self.session = session
        self.log = logging.getLogger(f"{session.account_name}:presence")

    def __identity(self, handle: int) -> Optional[PeerIdentity]:
        try:
            return self.session.registry.identity_for(handle)
        except HandleResolutionFailure as e:
            self.log.debug("Dropping event: %s", e)
            return None

    def __push(
        self,
        identity: PeerIdentity,
        status: CanonicalStatus,
        message: Optional[str] = None,
    ):
        entry = self.session.registry.get(identity)
        if entry is not None:
            entry.status = status
        status_id = to_local_status_id(status)
        self.log.debug("Setting user status for user %s to %s", identity, status_id)
        self.session.contact_list.push_presence(str(identity), status_id, message)

    def on_connection_status(self, handle: int, online: bool):
        self.log.debug("Friend #%s connection change: %s", handle, online)
        identity = self.__identity(handle)
        if identity is None:
            return
        raw = self.session.network.get_friend_status(handle)
        self.__push(identity, derive_canonical(raw, handle, lambda _: online))

    def on_user_status(self, handle: int, raw: UserStatus):
        self.log.debug("Friend #%s status change: %s", handle, raw)
        identity = self.__identity(handle)
        if identity is None:
            return
        network = self.session.network
        self.__push(
            identity, derive_canonical(raw, handle, network.is_friend_connected)
        )

    def on_name_change(self, handle: int, data: bytes):
        identity = self.__identity(handle)
        if identity is None:
            return
        self.session.registry.upsert_alias(identity, decode(data))

    def on_friend_message(self, handle: int, data: bytes):
        self.log.debug("Message received from #%s", handle)
        identity = self.__identity(handle)
        if identity is None:
            return
        self.session.contact_list.deliver_message(str(identity), decode(data))

    def query(self, identity: PeerIdentity):
        """
        Fetch status and nickname of a contact from the network library.
        """
        network = self.session.network
        entry = self.session.registry.resolve(identity)
        raw = None if entry.handle is None else network.get_friend_status(entry.handle)
        self.__push(
            identity, derive_canonical(raw, entry.handle, network.is_friend_connected)
        )
        if entry.handle is None:
            return
        if alias := network.get_friend_name(entry.handle):
            self.session.registry.upsert_alias(identity, alias)

    def query_all(self):
        for identity in self.session.registry:
            self.query(identity)

    def push_local_status(self, status: CanonicalStatus, message: Optional[str] = None):
        network_status = to_network_status(status)
        if network_status is None:
            self.log.debug("Status %s cannot be set on the network", status)
            return
        self.log.debug("Setting status %s", status)
        self.session.status = status
        self.session.status_message = message
        self.session.network.set_user_status(network_status)
        if message:
            self.session.network.set_status_message(message)

    def set_local_status(self, status_id: str, message: Optional[str] = None):
        status = to_canonical_from_local_id(status_id)
        if status is None:
            self.log.debug("Status %s is invalid", status_id)
            return
        self.push_local_status(status, message)

    def discover(self, peer: "ToxSession"):
        """
        Show the status of another local session, if it is one of our contacts,
        without waiting for the network to tell us.
        """
        identity = peer.own_identity
        if identity is None or not self.session.registry.has_contact(identity):
            return
        self.log.debug(
            "%s sees that %s is %s: %s",
            self.session.account_name,
            peer.account_name,
            peer.status,
            peer.status_message,
        )
        self.session.contact_list.push_presence(
            str(identity), to_local_status_id(peer.status), peer.status_message
        )

    def send_message(self, identity: PeerIdentity, text: str) -> bool:
        if not self.session.registry.has_contact(identity):
            self.log.debug("Can't send message because %s was not found", identity)
            return False
        entry = self.session.registry.resolve(identity)
        if entry.handle is None:
            self.log.debug("Can't send message because the friend number is unknown")
            return False
        return self.session.network.send_message(entry.handle, text)


def decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").rstrip("\x00")
