"""
Interface to the Tox network library.

A concrete binding subclasses :class:`ToxNetwork` (exactly once) in the module
named by the ``--network-module`` option. The gateway instantiates it once per
login.

Bindings must only fire events from within :meth:`ToxNetwork.pump`, so that
every callback runs on the gateway's event loop.
"""

import logging
from abc import abstractmethod
from collections import defaultdict
from enum import IntEnum
from typing import Callable, Literal, Optional

from .util import ABCSubclassableOnceAtMost

NetworkEvent = Literal[
    "friend_request",  # (public_key: bytes, data: bytes)
    "friend_message",  # (handle: int, data: bytes)
    "name_change",  # (handle: int, data: bytes)
    "user_status",  # (handle: int, status: UserStatus)
    "connection_status",  # (handle: int, online: bool)
]


class UserStatus(IntEnum):
    NONE = 0
    AWAY = 1
    BUSY = 2
    INVALID = 3


class ToxNetwork(metaclass=ABCSubclassableOnceAtMost):
    """
    One running instance of the network library, holding one identity.
    """

    def __init__(self):
        self.__handlers = defaultdict[str, list[Callable]](list)

    def add_event_handler(self, name: NetworkEvent, handler: Callable):
        self.__handlers[name].append(handler)

    def del_event_handlers(self):
        self.__handlers.clear()

    def event(self, name: NetworkEvent, *args):
        """
        Dispatch an event to the registered handlers, in registration order.

        Meant to be called by bindings from :meth:`.pump`.
        """
        handlers = self.__handlers.get(name)
        if not handlers:
            log.debug("No handler for %s", name)
            return
        for handler in list(handlers):
            handler(*args)

    @property
    @abstractmethod
    def self_public_key(self) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def bootstrap(self, address: str, port: int, public_key: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    def pump(self) -> None:
        """
        Service network I/O and fire pending events. Must not block.
        """
        raise NotImplementedError

    @abstractmethod
    def is_connected(self) -> bool:
        """
        Whether we are connected to the DHT
        """
        raise NotImplementedError

    @abstractmethod
    def add_friend(self, public_key: bytes, message: bytes) -> int:
        """
        :return: the handle of the new friend, or a negative error code
        """
        raise NotImplementedError

    @abstractmethod
    def add_friend_norequest(self, public_key: bytes) -> int:
        raise NotImplementedError

    @abstractmethod
    def del_friend(self, handle: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_user_status(self, status: UserStatus) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_status_message(self, text: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_name(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_self_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_friend_name(self, handle: int) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def get_friend_status(self, handle: int) -> UserStatus:
        raise NotImplementedError

    @abstractmethod
    def is_friend_connected(self, handle: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_friend_handle(self, public_key: bytes) -> Optional[int]:
        raise NotImplementedError

    @abstractmethod
    def get_friend_public_key(self, handle: int) -> Optional[bytes]:
        raise NotImplementedError

    @abstractmethod
    def send_message(self, handle: int, text: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def save(self) -> bytes:
        """
        Opaque serialization of the whole library state, friends included.
        """
        raise NotImplementedError

    @abstractmethod
    def load(self, data: bytes) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


log = logging.getLogger(__name__)
