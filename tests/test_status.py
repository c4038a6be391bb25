import pytest

from toxgate.core.status import (
    STATUS_TABLE,
    CanonicalStatus,
    derive_canonical,
    status_types,
    to_canonical_from_local_id,
    to_local_status_id,
    to_network_status,
)
from toxgate.network import UserStatus


@pytest.mark.parametrize("status", list(CanonicalStatus))
def test_local_id_round_trip(status):
    assert to_canonical_from_local_id(to_local_status_id(status)) is status


def test_unknown_local_id():
    assert to_canonical_from_local_id("available") is None


def test_status_types():
    infos = list(status_types())
    assert [i.status_id for i in infos] == [
        "tox_online",
        "tox_away",
        "tox_busy",
        "tox_offline",
    ]
    assert [i.title for i in infos] == ["Online", "Away", "Busy", "Offline"]


def test_network_status():
    assert to_network_status(CanonicalStatus.ONLINE) == UserStatus.NONE
    assert to_network_status(CanonicalStatus.AWAY) == UserStatus.AWAY
    assert to_network_status(CanonicalStatus.BUSY) == UserStatus.BUSY
    assert to_network_status(CanonicalStatus.OFFLINE) is None


def test_table_is_read_only():
    with pytest.raises(TypeError):
        STATUS_TABLE[CanonicalStatus.ONLINE] = STATUS_TABLE[CanonicalStatus.AWAY]  # type:ignore


def test_derive_status_wins_over_liveness():
    assert derive_canonical(UserStatus.AWAY, 1, lambda _: False) is CanonicalStatus.AWAY
    assert derive_canonical(UserStatus.BUSY, 1, lambda _: False) is CanonicalStatus.BUSY
    assert derive_canonical(UserStatus.BUSY, None, lambda _: True) is CanonicalStatus.BUSY


def test_derive_liveness():
    assert derive_canonical(UserStatus.NONE, 1, lambda _: True) is CanonicalStatus.ONLINE
    assert derive_canonical(UserStatus.NONE, 1, lambda _: False) is CanonicalStatus.OFFLINE
    assert derive_canonical(None, 1, lambda _: True) is CanonicalStatus.ONLINE
    assert derive_canonical(UserStatus.INVALID, 1, lambda _: True) is CanonicalStatus.ONLINE


def test_derive_no_handle():
    def probe(_):
        raise AssertionError("Liveness should not be probed without a handle")

    assert derive_canonical(None, None, probe) is CanonicalStatus.OFFLINE
