from pathlib import Path
from typing import Optional

from slixmpp import JID as JIDType

# REQUIRED, so not default value

NETWORK_MODULE: str
NETWORK_MODULE__DOC = (
    "Importable python module containing exactly one ToxNetwork subclass, "
    "binding the Tox network library"
)

SECRET: str
SECRET__DOC = "The gateway component's secret (required to connect to the XMPP server)"

JID: JIDType
JID__DOC = "The gateway component's JID"
JID__SHORT = "j"

SERVER: str = "localhost"
SERVER__DOC = (
    "The XMPP server's host name. Defaults to localhost, which is the "
    "standard way of running a component, on the same host as the XMPP server."
)
SERVER__SHORT = "s"

PORT: str = "5347"
PORT__DOC = "The XMPP server's port for incoming component connections"
PORT__SHORT = "p"

# Dynamic default (depends on other values)

HOME_DIR: Path
HOME_DIR__DOC = (
    "Directory where toxgate writes its persistent data. "
    "Defaults to /var/lib/toxgate/${TOXGATE_JID}. "
)
HOME_DIR__DYNAMIC_DEFAULT = True

USER_JID_VALIDATOR: str
USER_JID_VALIDATOR__DOC = (
    "Regular expression to restrict users that can use the gateway, by JID. "
    "Defaults to .*@${TOXGATE_SERVER}, but since TOXGATE_SERVER is usually localhost, "
    "you probably want to change that to .*@example.com"
)
USER_JID_VALIDATOR__DYNAMIC_DEFAULT = True

# Tox network

DHT_SERVER: str = "192.184.81.118"
DHT_SERVER__DOC = "Address of the DHT node used to join the Tox network"

DHT_SERVER_PORT: int = 33445
DHT_SERVER_PORT__DOC = "UDP port of the DHT node"

DHT_SERVER_KEY: str = (
    "5CD7EB176C19A2FD840406CD56177BB8E75587BB366F7BB3004B19E3EDC04143"
)
DHT_SERVER_KEY__DOC = "Public key of the DHT node, in hexadecimal"

FRIEND_REQUEST_MESSAGE: str = "Please allow me to add you as a friend!"
FRIEND_REQUEST_MESSAGE__DOC = "Text sent along with outgoing friend requests"

PUMP_INTERVAL: float = 0.1
PUMP_INTERVAL__DOC = "Seconds between two runs of the network library's event loop"

PROBE_INTERVAL: float = 2
PROBE_INTERVAL__DOC = "Seconds between two checks of the DHT connection"

# Logging

LOG_FILE: Optional[Path] = None
LOG_FILE__DOC = "Log to a file instead of stdout/err"

LOG_FORMAT: str = "%(levelname)s:%(name)s:%(message)s"
LOG_FORMAT__DOC = (
    "Optionally, a format string for logging messages. Refer to "
    "https://docs.python.org/3/library/logging.html#logrecord-attributes "
    "for available options."
)
