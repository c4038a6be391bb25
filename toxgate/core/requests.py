import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Optional

from ..util.error import FriendAddError, FriendAddFailed, InvalidIdentityEncoding
from . import config
from .identity import PeerIdentity
from .presence import decode

if TYPE_CHECKING:
    from .session import ToxSession


@dataclass(frozen=True)
class OutstandingRequest:
    identity: PeerIdentity
    text: Optional[str] = None


class FriendRequests:
    """
    Friend request handshake, in both directions.
    """

    def __init__(self, session: "ToxSession"):
        self.session = session
        self.log = logging.getLogger(f"{session.account_name}:requests")
        self.__outstanding: dict[PeerIdentity, OutstandingRequest] = {}

    @property
    def outstanding(self) -> list[OutstandingRequest]:
        return list(self.__outstanding.values())

    def on_friend_request(self, public_key: bytes, data: bytes):
        try:
            identity = PeerIdentity.from_bytes(public_key)
        except InvalidIdentityEncoding as e:
            self.log.warning("Ignoring friend request: %s", e)
            return
        text = decode(data) or None
        self.log.debug("Friend request from %s: %s", identity, text)

        if self.session.registry.has_contact(identity):
            self.log.debug("%s is already in the contact list", identity)
            return
        if identity in self.__outstanding:
            self.log.debug("Already asking the user about %s", identity)
            return

        request = OutstandingRequest(identity, text)
        self.__outstanding[identity] = request
        self.session.contact_list.request_yes_no(
            "New friend request",
            f"The user {identity} has sent you a friend request, "
            "do you want to add them?",
            text,
            on_yes=partial(self.__answer, request, True),
            on_no=partial(self.__answer, request, False),
        )

    def __answer(self, request: OutstandingRequest, accepted: bool):
        if self.__outstanding.get(request.identity) is not request:
            self.log.debug("Ignoring answer to a stale request from %s", request.identity)
            return
        del self.__outstanding[request.identity]
        if accepted:
            self.accept(request.identity)
        else:
            self.log.debug("Friend request from %s declined", request.identity)

    def abandon(self):
        if self.__outstanding:
            self.log.debug("Abandoning %s friend request(s)", len(self.__outstanding))
        self.__outstanding.clear()
        self.session.contact_list.abandon_prompts()

    def accept(self, identity: PeerIdentity) -> Optional[int]:
        """
        Add a peer who asked to be our friend, without sending a request back.
        """
        try:
            handle = self.add_friend(identity, send_request=False)
        except FriendAddFailed:
            return None
        self.log.debug("Adding %s to the contact list", identity)
        alias = self.session.network.get_friend_name(handle) or None
        self.session.contact_list.add_contact(str(identity), alias)
        self.session.presence.query(identity)
        self.__deliver_pending(identity)
        return handle

    def add_friend(self, identity: PeerIdentity, send_request: bool) -> int:
        """
        Make a peer a friend on the network.

        :param send_request: send a friend request with the default invitation text
        :return: the network handle of the friend
        :raises FriendAddFailed: after notifying the user
        """
        network = self.session.network
        if send_request:
            ret = network.add_friend(
                identity.public_key, config.FRIEND_REQUEST_MESSAGE.encode()
            )
        else:
            ret = network.add_friend_norequest(identity.public_key)

        if ret < 0:
            reason = FriendAddError.from_code(ret)
            self.log.info("Could not add %s: %s", identity, reason.text)
            self.session.contact_list.notify_error("Error", reason.text)
            raise FriendAddFailed(reason)

        self.log.debug("Friend %s added as #%s", identity, ret)
        self.session.registry.bind(identity, ret)
        return ret

    def add_from_contact_list(self, identity: PeerIdentity) -> Optional[int]:
        """
        The user added a contact to their list: send them a friend request.

        The contact is taken out of the list again if that fails, unless a
        request is already on its way.
        """
        self.log.debug("Adding %s to the friend list", identity)
        try:
            handle = self.add_friend(identity, send_request=True)
        except FriendAddFailed as e:
            if e.reason != FriendAddError.REQUEST_ALREADY_PENDING:
                self.session.registry.forget(identity)
                self.session.contact_list.remove_contact(str(identity))
                return None
            handle = None
        self.session.presence.query(identity)
        self.__deliver_pending(identity)
        return handle

    def remove_contact(self, identity: PeerIdentity):
        self.log.debug("Removing %s", identity)
        self.session.registry.remove(identity)

    def __deliver_pending(self, identity: PeerIdentity):
        for msg in self.session.offline.drain(identity):
            self.session.contact_list.deliver_message(
                str(identity), msg.text, msg.timestamp
            )
