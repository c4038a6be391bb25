"""
Exceptions raised by the synchronization engine.

None of these is fatal to the process: the XMPP side turns them into
notifications or :class:`slixmpp.exceptions.XMPPError` replies.
"""

from enum import IntEnum


class ToxGateError(Exception):
    pass


class InvalidIdentityEncoding(ToxGateError, ValueError):
    """
    A textual peer identity is not exactly twice the key size in hex digits.
    """


class HandleResolutionFailure(ToxGateError, LookupError):
    """
    The network library does not know this peer (or this handle).
    """


class AlreadyLoggedIn(ToxGateError):
    """
    A second login was attempted before the first one logged out.
    """


class NetworkInitError(ToxGateError):
    """
    The network library could not be instantiated; login is aborted.
    """


class FriendAddError(IntEnum):
    """
    Result codes of the network library's friend-add primitives.
    """

    MESSAGE_TOO_LONG = -1
    MISSING_MESSAGE = -2
    SELF_ADD_ATTEMPT = -3
    REQUEST_ALREADY_PENDING = -4
    UNKNOWN = -5

    @classmethod
    def from_code(cls, code: int) -> "FriendAddError":
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN

    @property
    def text(self) -> str:
        return _FRIEND_ADD_ERROR_TEXT[self]


_FRIEND_ADD_ERROR_TEXT = {
    FriendAddError.MESSAGE_TOO_LONG: "Message too long",
    FriendAddError.MISSING_MESSAGE: "Missing request message",
    FriendAddError.SELF_ADD_ATTEMPT: "You're trying to add yourself as a friend",
    FriendAddError.REQUEST_ALREADY_PENDING: "Friend request already sent",
    FriendAddError.UNKNOWN: "Error adding friend",
}


class FriendAddFailed(ToxGateError):
    def __init__(self, reason: FriendAddError):
        super().__init__(reason.text)
        self.reason = reason
