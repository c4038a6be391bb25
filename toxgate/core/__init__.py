from .contact_list import ContactList, Preferences
from .hub import SessionHub
from .identity import PeerIdentity
from .session import ConnectionState, ToxSession
from .status import CanonicalStatus

__all__ = [
    "CanonicalStatus",
    "ConnectionState",
    "ContactList",
    "PeerIdentity",
    "Preferences",
    "SessionHub",
    "ToxSession",
]
