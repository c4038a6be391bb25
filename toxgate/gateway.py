"""
An XMPP component that acts as the contact list of Tox sessions.

Each Tox friend is a "puppet" JID ``<hex tox id>@<component JID>``. The XMPP
user logs in by sending an available presence to the component, and logs out
with an unavailable one. Adding and removing puppets to/from the roster adds
and removes Tox friends. Questions (friend requests) are asked by chat
messages from the component itself.
"""

import asyncio
import logging
import re
from collections import deque
from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from slixmpp import JID, ComponentXMPP, Message, Presence
from slixmpp.exceptions import XMPPError
from slixmpp.types import PresenceShows, PresenceTypes

from .core import config
from .core.contact_list import ContactList
from .core.hub import SessionHub
from .core.identity import PeerIdentity
from .core.session import ConnectionState, ToxSession
from .core.status import CanonicalStatus, STATUS_TABLE
from .network import ToxNetwork
from .util.db import AccountPreferences, AccountStore
from .util.error import AlreadyLoggedIn, InvalidIdentityEncoding, NetworkInitError

# status id -> (presence type, presence show)
XMPP_PRESENCE: dict[str, tuple[Optional[PresenceTypes], Optional[PresenceShows]]] = {
    STATUS_TABLE[CanonicalStatus.ONLINE].status_id: (None, None),
    STATUS_TABLE[CanonicalStatus.AWAY].status_id: (None, "away"),
    STATUS_TABLE[CanonicalStatus.BUSY].status_id: (None, "dnd"),
    STATUS_TABLE[CanonicalStatus.OFFLINE].status_id: ("unavailable", None),
}

# what slixmpp's Presence.get_type() returns -> what we set on the network
USER_PRESENCE: dict[str, CanonicalStatus] = {
    "available": CanonicalStatus.ONLINE,
    "chat": CanonicalStatus.ONLINE,
    "away": CanonicalStatus.AWAY,
    "xa": CanonicalStatus.AWAY,
    "dnd": CanonicalStatus.BUSY,
}

YES = {"yes", "y", "ok", "accept"}
NO = {"no", "n", "decline", "refuse"}


class XMPPContactList(ContactList):
    """
    The roster of an XMPP user, as seen by their Tox session.
    """

    RESOURCE = "toxgate"

    def __init__(self, xmpp: "Gateway", user_jid: JID, store: AccountStore):
        self.xmpp = xmpp
        self.user_jid = JID(user_jid.bare)
        self.store = store
        self.log = logging.getLogger(f"{self.user_jid.bare}:roster")
        self.display_identity: Optional[str] = None
        self.display_name: Optional[str] = None
        self.__prompts = deque[tuple[Callable[[], None], Callable[[], None]]]()
        self.__last_presence = dict[str, tuple[str, Optional[str]]]()

    def __repr__(self):
        return f"<Contact list of {self.user_jid}>"

    @property
    def pending_prompts(self) -> int:
        return len(self.__prompts)

    def contact_jid(self, identifier: str) -> JID:
        jid = JID(f"{identifier}@{self.xmpp.boundjid.bare}")
        jid.resource = self.RESOURCE
        return jid

    def __contacts(self) -> dict[str, Optional[str]]:
        return self.store.get_or_create(self.user_jid).contacts

    def __commit(self, identifier: str, alias: Optional[str], remove=False):
        account = self.store.get_or_create(self.user_jid)
        if remove:
            account.contacts.pop(identifier, None)
        else:
            account.contacts[identifier] = alias
        self.store.commit(account)

    def has_contact(self, identifier: str) -> bool:
        return identifier in self.__contacts()

    def contacts(self) -> list[str]:
        return list(self.__contacts())

    def store_contact(self, identifier: str, alias: Optional[str] = None):
        """
        Record a contact the user added to their roster themselves.
        """
        self.__commit(identifier, alias)

    def forget_contact(self, identifier: str):
        """
        Drop a contact the user removed from their roster themselves.
        """
        self.__commit(identifier, None, remove=True)
        self.__last_presence.pop(identifier, None)

    def add_contact(self, identifier: str, alias: Optional[str] = None) -> None:
        self.__commit(identifier, alias)
        self.xmpp.send_presence(
            pfrom=self.contact_jid(identifier).bare,
            pto=self.user_jid,
            ptype="subscribe",
            pnick=alias,
        )

    def remove_contact(self, identifier: str) -> None:
        self.forget_contact(identifier)
        jid = self.contact_jid(identifier)
        for ptype in "unsubscribe", "unsubscribed", "unavailable":
            self.xmpp.send_presence(pfrom=jid, pto=self.user_jid, ptype=ptype)

    def set_alias(self, identifier: str, alias: str) -> None:
        self.__commit(identifier, alias)
        if (last := self.__last_presence.get(identifier)) is not None:
            self.__send_presence(identifier, *last)

    def push_presence(
        self, identifier: str, status_id: str, message: Optional[str] = None
    ) -> None:
        if status_id not in XMPP_PRESENCE:
            self.log.error("%s has an unknown status: %s", identifier, status_id)
            return
        self.__last_presence[identifier] = (status_id, message)
        self.__send_presence(identifier, status_id, message)

    def __send_presence(self, identifier: str, status_id: str, message: Optional[str]):
        ptype, pshow = XMPP_PRESENCE[status_id]
        self.xmpp.send_presence(
            pfrom=self.contact_jid(identifier),
            pto=self.user_jid,
            ptype=ptype,
            pshow=pshow,
            pstatus=message,
            pnick=self.__contacts().get(identifier),
        )

    def deliver_message(
        self, identifier: str, text: str, when: Optional[datetime] = None
    ) -> None:
        msg = self.xmpp.make_message(
            mto=self.user_jid,
            mfrom=self.contact_jid(identifier),
            mbody=text,
            mtype="chat",
        )
        if when is not None:
            msg["delay"].set_stamp(when)
        msg.send()

    def send_gateway_message(self, text: str):
        self.xmpp.send_message(
            mto=self.user_jid, mfrom=self.xmpp.boundjid.bare, mbody=text, mtype="chat"
        )

    def request_yes_no(
        self,
        title: str,
        primary: str,
        secondary: Optional[str],
        on_yes: Callable[[], None],
        on_no: Callable[[], None],
    ) -> None:
        self.__prompts.append((on_yes, on_no))
        lines = [f"{title}: {primary}"]
        if secondary:
            lines.append(f"« {secondary} »")
        lines.append("Reply 'yes' or 'no'.")
        self.send_gateway_message("\n".join(lines))

    def answer(self, text: str) -> bool:
        """
        Feed a message from the user to the oldest open question.

        :return: False if there is no open question or if the text is not an answer
        """
        if not self.__prompts:
            return False
        word = text.strip().lower()
        if word in YES:
            on_yes, _ = self.__prompts.popleft()
            on_yes()
            return True
        if word in NO:
            _, on_no = self.__prompts.popleft()
            on_no()
            return True
        return False

    def abandon_prompts(self) -> None:
        if self.__prompts:
            self.log.debug("Dropping %s unanswered question(s)", len(self.__prompts))
        self.__prompts.clear()

    def notify_error(self, title: str, text: str) -> None:
        self.send_gateway_message(f"{title}: {text}")

    def update_progress(self, text: str, step: int, total: int) -> None:
        self.xmpp.send_presence(
            pfrom=self.xmpp.boundjid.bare,
            pto=self.user_jid,
            pshow=None if step + 1 >= total else "dnd",
            pstatus=text,
        )

    def set_display_identity(self, identifier: str) -> None:
        if identifier == self.display_identity:
            return
        self.display_identity = identifier
        self.send_gateway_message(f"Your Tox ID is {identifier}")

    def set_display_name(self, name: str) -> None:
        self.log.debug("Display name: %s", name)
        self.display_name = name


class Ignore(BaseException):
    pass


def exceptions_to_xmpp_errors(cb):
    @wraps(cb)
    async def wrapped(*args):
        try:
            await cb(*args)
        except Ignore:
            pass
        except XMPPError:
            raise
        except Exception as e:
            log.error("Failed to handle incoming stanza: %s", args, exc_info=e)
            raise XMPPError("internal-server-error", str(e))

    return wrapped


class Gateway(ComponentXMPP):
    """
    The gateway component. One :class:`.ToxSession` per XMPP user.
    """

    COMPONENT_NAME = "Tox"

    def __init__(self, network_cls: type[ToxNetwork], store: AccountStore):
        self.log = log
        super().__init__(
            config.JID,
            config.SECRET,
            config.SERVER,
            config.PORT,
            plugin_whitelist=SLIXMPP_PLUGINS,
        )
        self.network_cls = network_cls
        self.store = store
        self.hub = SessionHub()
        self.sessions: dict[str, ToxSession] = {}
        self.jid_validator: re.Pattern = re.compile(config.USER_JID_VALIDATOR)
        self.has_crashed: bool = False

        self.register_plugins()
        self.plugin["xep_0030"].add_identity(
            category="gateway", itype="tox", name=self.COMPONENT_NAME
        )
        self.loop.set_exception_handler(self.__exception_handler)
        self.__register_slixmpp_events()

    def __register_slixmpp_events(self):
        self.del_event_handler("presence_subscribe", self._handle_subscribe)
        self.del_event_handler("presence_unsubscribe", self._handle_unsubscribe)
        self.del_event_handler("presence_subscribed", self._handle_subscribed)
        self.del_event_handler("presence_unsubscribed", self._handle_unsubscribed)
        self.del_event_handler(
            "roster_subscription_request", self._handle_new_subscription
        )
        self.del_event_handler("presence_probe", self._handle_probe)
        self.add_event_handler("presence_subscribe", self.on_subscribe)
        self.add_event_handler("presence_unsubscribe", self.on_unsubscribe)
        self.add_event_handler("presence_unsubscribed", self.on_unsubscribe)
        self.add_event_handler("presence_probe", self.on_probe)
        self.add_event_handler("presence", self.on_presence)
        self.add_event_handler("message", self.on_message)

    def __exception_handler(self, loop: asyncio.AbstractEventLoop, context):
        exc = context.get("exception")
        if exc is None:
            log.debug("No exception in this context: %s", context)
        elif isinstance(exc, SystemExit):
            log.debug("SystemExit called in an asyncio task")
        else:
            log.error("Crash in an asyncio task: %s", context)
            log.exception("Crash in task", exc_info=exc)
            self.has_crashed = True
            loop.stop()

    def get_session(self, user_jid: JID) -> ToxSession:
        bare = user_jid.bare
        session = self.sessions.get(bare)
        if session is None:
            session = self.sessions[bare] = ToxSession(
                bare,
                self.network_cls,
                XMPPContactList(self, user_jid, self.store),
                AccountPreferences(self.store, user_jid),
                self.hub,
                self.loop,
            )
        return session

    def __logged_session(self, stanza: Message | Presence) -> ToxSession:
        session = self.sessions.get(stanza.get_from().bare)
        if session is None or not session.logged:
            raise XMPPError("registration-required", "You are not logged in to Tox")
        return session

    @staticmethod
    def __identity(jid: JID) -> PeerIdentity:
        try:
            return PeerIdentity.from_hex(jid.node)
        except InvalidIdentityEncoding as e:
            raise XMPPError("jid-malformed", str(e))

    @exceptions_to_xmpp_errors
    async def on_presence(self, p: Presence):
        if p.get_to() != self.boundjid.bare:
            return
        ptype = p.get_type()
        if ptype not in _USEFUL_PRESENCES:
            return
        user = p.get_from()
        if not self.jid_validator.match(user.bare):
            log.debug("Ignoring presence from %s", user)
            return

        if ptype == "unavailable":
            if (session := self.sessions.get(user.bare)) is not None:
                await session.logout()
            return

        session = self.get_session(user)
        if not session.logged:
            try:
                await session.login()
            except (AlreadyLoggedIn, NetworkInitError) as e:
                log.warning("Login problem for %s", user, exc_info=e)
                session.contact_list.notify_error("Could not login", str(e))
                return
        session.presence.push_local_status(USER_PRESENCE[ptype], p["status"] or None)

    @exceptions_to_xmpp_errors
    async def on_subscribe(self, pres: Presence):
        if pres.get_to() == self.boundjid.bare:
            pres.reply().send()
            return
        session = self.__logged_session(pres)
        identity = self.__identity(pres.get_to())
        contact_list: XMPPContactList = session.contact_list  # type:ignore
        pres.reply().send()
        if contact_list.has_contact(str(identity)):
            return
        contact_list.store_contact(str(identity))
        session.requests.add_from_contact_list(identity)

    @exceptions_to_xmpp_errors
    async def on_unsubscribe(self, pres: Presence):
        if pres.get_to() == self.boundjid.bare:
            return
        session = self.__logged_session(pres)
        identity = self.__identity(pres.get_to())
        contact_list: XMPPContactList = session.contact_list  # type:ignore
        if not contact_list.has_contact(str(identity)):
            return
        contact_list.forget_contact(str(identity))
        session.requests.remove_contact(identity)

    @exceptions_to_xmpp_errors
    async def on_probe(self, pres: Presence):
        if pres.get_to() == self.boundjid.bare:
            return
        session = self.sessions.get(pres.get_from().bare)
        if session is None or session.state != ConnectionState.CONNECTED:
            return
        session.presence.query(self.__identity(pres.get_to()))

    @exceptions_to_xmpp_errors
    async def on_message(self, msg: Message):
        if msg.get_type() not in ("chat", "normal"):
            return
        if not (body := msg["body"]):
            return
        if msg.get_from().server == self.boundjid.bare:
            raise Ignore
        session = self.__logged_session(msg)

        if msg.get_to() == self.boundjid.bare:
            self.__on_gateway_message(session, body)
            return

        identity = self.__identity(msg.get_to())
        if not session.presence.send_message(identity, body):
            raise XMPPError("item-not-found", f"{identity} is not one of your Tox friends")

    def __on_gateway_message(self, session: ToxSession, body: str):
        contact_list: XMPPContactList = session.contact_list  # type:ignore
        if contact_list.answer(body):
            return
        first_word, _, rest = body.strip().partition(" ")
        first_word = first_word.lower()
        if first_word == "nick" and rest.strip():
            session.set_nickname(rest.strip())
            contact_list.send_gateway_message(f"Your nickname is now {rest.strip()}")
        elif first_word == "id" and session.own_identity is not None:
            contact_list.send_gateway_message(str(session.own_identity))
        else:
            contact_list.send_gateway_message(
                "Commands: 'nick <your nickname>', 'id' (show your Tox ID)"
            )

    def shutdown(self) -> list[asyncio.Task]:
        log.debug("Shutting down")
        tasks = []
        for session in self.sessions.values():
            if session.logged:
                tasks.append(self.loop.create_task(session.logout()))
            self.send_presence(ptype="unavailable", pto=session.contact_list.user_jid)  # type:ignore
        return tasks


_USEFUL_PRESENCES = {"available", "unavailable", "away", "chat", "dnd", "xa"}

SLIXMPP_PLUGINS = [
    "xep_0030",  # Service discovery
    "xep_0172",  # User nickname
    "xep_0199",  # XMPP Ping
    "xep_0203",  # Delayed delivery
]

log = logging.getLogger(__name__)
