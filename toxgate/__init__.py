"""
A gateway between XMPP and the Tox network.

Network library bindings subclass :class:`.ToxNetwork` exactly once and are
selected at launch with ``--network-module``.
"""

from .core import config as global_config  # noqa: F401
from .core.identity import PeerIdentity
from .core.session import ToxSession
from .network import ToxNetwork, UserStatus
from .util.util import addLoggingLevel

__all__ = [
    "PeerIdentity",
    "ToxNetwork",
    "ToxSession",
    "UserStatus",
    "global_config",
]

addLoggingLevel()
