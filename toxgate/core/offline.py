import logging
from collections import defaultdict
from datetime import datetime, timezone
from enum import IntFlag
from typing import NamedTuple

from .identity import PeerIdentity


class MessageFlags(IntFlag):
    RECEIVED = 1
    DELAYED = 2


class PendingMessage(NamedTuple):
    sender: PeerIdentity
    text: str
    timestamp: datetime
    flags: MessageFlags = MessageFlags.RECEIVED | MessageFlags.DELAYED


class OfflineMessageQueue:
    """
    Messages from senders that are not (yet) in the contact list, waiting for
    that contact to be added.

    There is no size limit.
    """

    def __init__(self):
        self.__pending = defaultdict[PeerIdentity, list[PendingMessage]](list)

    def __len__(self):
        return sum(len(messages) for messages in self.__pending.values())

    def __contains__(self, identity: PeerIdentity):
        return bool(self.__pending.get(identity))

    def enqueue(self, identity: PeerIdentity, text: str) -> PendingMessage:
        msg = PendingMessage(identity, text, datetime.now(timezone.utc))
        self.__pending[identity].append(msg)
        log.debug("Queued message from %s (%s pending)", identity, len(self))
        return msg

    def drain(self, identity: PeerIdentity) -> list[PendingMessage]:
        return self.__pending.pop(identity, [])


log = logging.getLogger(__name__)
