import logging
from typing import TYPE_CHECKING, Iterator

from ..util.error import AlreadyLoggedIn

if TYPE_CHECKING:
    from .session import ToxSession


class SessionHub:
    """
    The sessions currently logged in, by account name.
    """

    def __init__(self):
        self.__sessions: dict[str, "ToxSession"] = {}

    def __iter__(self) -> Iterator["ToxSession"]:
        return iter(list(self.__sessions.values()))

    def __len__(self):
        return len(self.__sessions)

    def __contains__(self, session: "ToxSession"):
        return self.__sessions.get(session.account_name) is session

    def add(self, session: "ToxSession"):
        if session.account_name in self.__sessions:
            raise AlreadyLoggedIn(f"{session.account_name} is already logged in")
        self.__sessions[session.account_name] = session

    def remove(self, session: "ToxSession"):
        if session in self:
            del self.__sessions[session.account_name]

    def broadcast(self, origin: "ToxSession", mutual=False):
        """
        Let the other local sessions know the status of ``origin``.

        :param mutual: also let ``origin`` know about the others
        """
        for other in self:
            if other is origin:
                continue
            log.debug(
                "Notifying %s that %s changed status",
                other.account_name,
                origin.account_name,
            )
            other.presence.discover(origin)
            if mutual:
                origin.presence.discover(other)


log = logging.getLogger(__name__)
