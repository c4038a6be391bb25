from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterator, NamedTuple, Optional

from ..network import UserStatus


class CanonicalStatus(Enum):
    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    OFFLINE = "offline"


class StatusInfo(NamedTuple):
    status_id: str
    title: str
    # None means "cannot be set, only inferred"
    network_status: Optional[UserStatus]


STATUS_TABLE = MappingProxyType(
    {
        CanonicalStatus.ONLINE: StatusInfo("tox_online", "Online", UserStatus.NONE),
        CanonicalStatus.AWAY: StatusInfo("tox_away", "Away", UserStatus.AWAY),
        CanonicalStatus.BUSY: StatusInfo("tox_busy", "Busy", UserStatus.BUSY),
        CanonicalStatus.OFFLINE: StatusInfo("tox_offline", "Offline", None),
    }
)

_BY_STATUS_ID = MappingProxyType(
    {info.status_id: status for status, info in STATUS_TABLE.items()}
)


def status_types() -> Iterator[StatusInfo]:
    yield from STATUS_TABLE.values()


def to_local_status_id(status: CanonicalStatus) -> str:
    return STATUS_TABLE[status].status_id


def to_canonical_from_local_id(status_id: str) -> Optional[CanonicalStatus]:
    return _BY_STATUS_ID.get(status_id)


def to_network_status(status: CanonicalStatus) -> Optional[UserStatus]:
    return STATUS_TABLE[status].network_status


def derive_canonical(
    raw: Optional[UserStatus],
    handle: Optional[int],
    liveness_probe: Callable[[int], bool],
) -> CanonicalStatus:
    """
    Compute the status of a friend from what the network library reports.

    Away and busy are reported as such even if the friend is not connected;
    anything else is online only if the friend currently has a live
    connection.
    """
    if raw == UserStatus.AWAY:
        return CanonicalStatus.AWAY
    if raw == UserStatus.BUSY:
        return CanonicalStatus.BUSY
    if handle is not None and liveness_probe(handle):
        return CanonicalStatus.ONLINE
    return CanonicalStatus.OFFLINE
