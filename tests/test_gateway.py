from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from slixmpp import JID

from toxgate.core.status import CanonicalStatus
from toxgate.gateway import USER_PRESENCE, XMPPContactList
from toxgate.util.db import AccountStore

from conftest import PEER_KEY

USER = JID("romeo@montague.lit/phone")
CONTACT = PEER_KEY.hex()


@pytest.fixture
def store(tmp_path):
    store = AccountStore()
    store.set_file(tmp_path / "toxgate.db")
    yield store
    store.close()


@pytest.fixture
def xmpp():
    xmpp = MagicMock()
    xmpp.boundjid = JID("tox.localhost")
    return xmpp


@pytest.fixture
def roster(xmpp, store):
    return XMPPContactList(xmpp, USER, store)


def test_contact_jid(roster):
    jid = roster.contact_jid(CONTACT)
    assert jid.bare == f"{CONTACT}@tox.localhost"
    assert jid.resource == "toxgate"


def test_add_contact(roster, xmpp, store):
    roster.add_contact(CONTACT)
    assert roster.has_contact(CONTACT)
    assert roster.contacts() == [CONTACT]
    assert store.get_by_jid(USER).contacts == {CONTACT: None}
    xmpp.send_presence.assert_called_once_with(
        pfrom=f"{CONTACT}@tox.localhost",
        pto=JID("romeo@montague.lit"),
        ptype="subscribe",
        pnick=None,
    )


def test_remove_contact(roster, xmpp):
    roster.add_contact(CONTACT)
    xmpp.send_presence.reset_mock()
    roster.remove_contact(CONTACT)
    assert not roster.has_contact(CONTACT)
    assert [c.kwargs["ptype"] for c in xmpp.send_presence.call_args_list] == [
        "unsubscribe",
        "unsubscribed",
        "unavailable",
    ]


@pytest.mark.parametrize(
    "status_id,ptype,pshow",
    [
        ("tox_online", None, None),
        ("tox_away", None, "away"),
        ("tox_busy", None, "dnd"),
        ("tox_offline", "unavailable", None),
    ],
)
def test_push_presence(roster, xmpp, status_id, ptype, pshow):
    roster.store_contact(CONTACT, "Juliet")
    roster.push_presence(CONTACT, status_id, "hello")
    kwargs = xmpp.send_presence.call_args.kwargs
    assert kwargs["pfrom"] == roster.contact_jid(CONTACT)
    assert kwargs["ptype"] == ptype
    assert kwargs["pshow"] == pshow
    assert kwargs["pstatus"] == "hello"
    assert kwargs["pnick"] == "Juliet"


def test_push_unknown_presence(roster, xmpp):
    roster.push_presence(CONTACT, "available")
    xmpp.send_presence.assert_not_called()


def test_set_alias_resends_presence(roster, xmpp):
    roster.store_contact(CONTACT)
    roster.set_alias(CONTACT, "Juliet")
    xmpp.send_presence.assert_not_called()

    roster.push_presence(CONTACT, "tox_busy")
    roster.set_alias(CONTACT, "Jules")
    kwargs = xmpp.send_presence.call_args.kwargs
    assert kwargs["pnick"] == "Jules"
    assert kwargs["pshow"] == "dnd"


def test_deliver_message(roster, xmpp):
    when = datetime(2020, 1, 1, tzinfo=timezone.utc)
    roster.deliver_message(CONTACT, "hi", when)
    kwargs = xmpp.make_message.call_args.kwargs
    assert kwargs["mbody"] == "hi"
    assert kwargs["mfrom"] == roster.contact_jid(CONTACT)
    msg = xmpp.make_message.return_value
    msg.__getitem__.assert_called_with("delay")
    msg.__getitem__.return_value.set_stamp.assert_called_once_with(when)
    msg.send.assert_called_once()


def test_yes_no(roster, xmpp):
    answers = []
    roster.request_yes_no(
        "New friend request",
        "Add them?",
        "hi",
        lambda: answers.append("first yes"),
        lambda: answers.append("first no"),
    )
    roster.request_yes_no(
        "New friend request",
        "Add them?",
        None,
        lambda: answers.append("second yes"),
        lambda: answers.append("second no"),
    )
    text = xmpp.send_message.call_args_list[0].kwargs["mbody"]
    assert "Add them?" in text
    assert "hi" in text
    assert roster.pending_prompts == 2

    assert not roster.answer("maybe")
    assert roster.answer("Yes")
    assert roster.answer(" no ")
    assert not roster.answer("yes")
    assert answers == ["first yes", "second no"]


def test_progress(roster, xmpp):
    roster.update_progress("Connecting", 0, 2)
    assert xmpp.send_presence.call_args.kwargs["pshow"] == "dnd"
    roster.update_progress("Connected", 1, 2)
    assert xmpp.send_presence.call_args.kwargs["pshow"] is None
    assert xmpp.send_presence.call_args.kwargs["pstatus"] == "Connected"


def test_display_identity(roster, xmpp):
    roster.set_display_identity(CONTACT)
    roster.set_display_identity(CONTACT)
    xmpp.send_message.assert_called_once()
    assert CONTACT in xmpp.send_message.call_args.kwargs["mbody"]


def test_notify_error(roster, xmpp):
    roster.notify_error("Error", "Message too long")
    assert xmpp.send_message.call_args.kwargs["mbody"] == "Error: Message too long"


def test_user_presence_mapping():
    assert USER_PRESENCE["available"] is CanonicalStatus.ONLINE
    assert USER_PRESENCE["xa"] is CanonicalStatus.AWAY
    assert USER_PRESENCE["dnd"] is CanonicalStatus.BUSY
    assert "unavailable" not in USER_PRESENCE


def test_abandoned_questions(roster, xmpp):
    answers = []
    roster.request_yes_no(
        "New friend request", "Add them?", None, lambda: answers.append("old"), list
    )
    roster.abandon_prompts()
    assert roster.pending_prompts == 0
    assert not roster.answer("yes")

    roster.request_yes_no(
        "New friend request", "Add them?", None, lambda: answers.append("new"), list
    )
    assert roster.answer("yes")
    assert answers == ["new"]
