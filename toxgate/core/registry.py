import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from ..util.error import HandleResolutionFailure, InvalidIdentityEncoding
from .identity import PeerIdentity
from .status import CanonicalStatus

if TYPE_CHECKING:
    from .session import ToxSession


@dataclass
class ContactEntry:
    identity: PeerIdentity
    handle: Optional[int] = None
    status: CanonicalStatus = CanonicalStatus.OFFLINE


class ContactRegistry:
    """
    Associates the contacts of the contact list with their network handles.

    Handles are looked up lazily and cached until the contact is removed.
    """

    def __init__(self, session: "ToxSession"):
        self.session = session
        self.log = logging.getLogger(f"{session.account_name}:registry")
        self.__entries: dict[PeerIdentity, ContactEntry] = {}

    def __repr__(self):
        return f"<Registry of {self.session.account_name}>"

    def __iter__(self) -> Iterator[PeerIdentity]:
        for identifier in self.session.contact_list.contacts():
            try:
                yield PeerIdentity.from_hex(identifier)
            except InvalidIdentityEncoding:
                self.log.warning("Ignoring contact with an invalid ID: %s", identifier)

    def has_contact(self, identity: PeerIdentity) -> bool:
        return self.session.contact_list.has_contact(str(identity))

    def get(self, identity: PeerIdentity) -> Optional[ContactEntry]:
        return self.__entries.get(identity)

    def resolve(self, identity: PeerIdentity) -> ContactEntry:
        entry = self.__entries.get(identity)
        if entry is None:
            entry = self.__entries[identity] = ContactEntry(identity)
        if entry.handle is None:
            entry.handle = self.session.network.get_friend_handle(identity.public_key)
            if entry.handle is None:
                self.log.debug("%s is not a friend on the network", identity)
            else:
                self.log.debug("%s is friend #%s", identity, entry.handle)
        return entry

    def bind(self, identity: PeerIdentity, handle: int) -> ContactEntry:
        entry = self.__entries.get(identity)
        if entry is None:
            entry = self.__entries[identity] = ContactEntry(identity, handle)
        else:
            entry.handle = handle
        return entry

    def identity_for(self, handle: int) -> PeerIdentity:
        """
        :raises HandleResolutionFailure: if the network does not know this handle
        """
        public_key = self.session.network.get_friend_public_key(handle)
        if public_key is None:
            raise HandleResolutionFailure(f"Could not get id of friend #{handle}")
        return PeerIdentity.from_bytes(public_key)

    def upsert_alias(self, identity: PeerIdentity, alias: str) -> None:
        if not self.has_contact(identity):
            self.log.debug(
                "Ignoring nick change because contact %s was not found", identity
            )
            return
        self.session.contact_list.set_alias(str(identity), alias)

    def remove(self, identity: PeerIdentity) -> None:
        entry = self.__entries.pop(identity, None)
        handle = None if entry is None else entry.handle
        if handle is None:
            handle = self.session.network.get_friend_handle(identity.public_key)
        if handle is None:
            self.log.debug("%s was not a friend on the network", identity)
            return
        self.log.debug("Removing tox friend #%s", handle)
        self.session.network.del_friend(handle)

    def forget(self, identity: PeerIdentity) -> None:
        self.__entries.pop(identity, None)

    def clear(self) -> None:
        """
        Drop every cached handle. Handles only mean something to the network
        instance that assigned them.
        """
        self.__entries.clear()
