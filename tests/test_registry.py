import pytest

from toxgate.util.error import HandleResolutionFailure

from conftest import PEER_KEY


def test_iter_skips_invalid_ids(logged, peer):
    logged.contact_list.add_contact(peer.hex)
    logged.contact_list.add_contact("not-a-tox-id")
    assert list(logged.registry) == [peer]


def test_resolve_caches_handle(logged, network, peer):
    handle = network.make_friend(PEER_KEY)
    entry = logged.registry.resolve(peer)
    assert entry.handle == handle
    assert logged.registry.get(peer) is entry

    network.friends.clear()
    assert logged.registry.resolve(peer).handle == handle


def test_failed_resolution_is_retried(logged, network, peer):
    assert logged.registry.resolve(peer).handle is None
    handle = network.make_friend(PEER_KEY)
    assert logged.registry.resolve(peer).handle == handle


def test_bind(logged, peer):
    logged.registry.resolve(peer)
    entry = logged.registry.bind(peer, 42)
    assert entry.handle == 42
    assert logged.registry.get(peer).handle == 42


def test_identity_for(logged, network, peer):
    handle = network.make_friend(PEER_KEY)
    assert logged.registry.identity_for(handle) == peer
    with pytest.raises(HandleResolutionFailure):
        logged.registry.identity_for(handle + 1)


def test_upsert_alias(logged, peer):
    logged.registry.upsert_alias(peer, "Juliet")
    assert not logged.contact_list.has_contact(peer.hex)

    logged.contact_list.add_contact(peer.hex)
    logged.registry.upsert_alias(peer, "Juliet")
    assert logged.contact_list.entries[peer.hex] == "Juliet"


def test_remove_uses_cached_handle(logged, network, peer):
    logged.registry.bind(peer, 7)
    logged.registry.remove(peer)
    assert network.deleted == [7]
    assert logged.registry.get(peer) is None


def test_remove_looks_up_handle(logged, network, peer):
    handle = network.make_friend(PEER_KEY)
    logged.registry.remove(peer)
    assert network.deleted == [handle]


def test_remove_unknown(logged, network, peer):
    logged.registry.remove(peer)
    assert network.deleted == []


def test_forget(logged, network, peer):
    logged.registry.bind(peer, 3)
    logged.registry.forget(peer)
    assert logged.registry.get(peer) is None
    assert network.deleted == []
