"""
This module covers a backend for storing account data persistently: the
preferences of each gateway user and the list of their Tox contacts.
"""

import dataclasses
import logging
import os.path
import shelve
from os import PathLike
from typing import Any, Optional

from slixmpp import JID

from ..core.contact_list import Preferences


@dataclasses.dataclass
class Account:
    """
    A gateway user
    """

    bare_jid: str
    """Bare JID of the user"""
    preferences: dict[str, Any] = dataclasses.field(default_factory=dict)
    """Nickname, saved network state…"""
    contacts: dict[str, Optional[str]] = dataclasses.field(default_factory=dict)
    """Hex Tox IDs of the contacts, and their alias if any"""

    def __hash__(self):
        return hash(self.bare_jid)

    def __repr__(self):
        return f"<Account {self.bare_jid}>"


class AccountStore:
    """
    Basic account store implementation using shelve from the python standard library

    set_file must be called before it is usable
    """

    def __init__(self):
        self._accounts: shelve.Shelf[Account] = None  # type: ignore

    def set_file(self, filename: PathLike):
        """
        Set the file to use to store account data

        :param filename: Path to the shelf file
        """
        if self._accounts is not None:
            raise RuntimeError("Shelf file already set!")
        if os.path.exists(filename):
            log.info("Using existing toxgate DB: %s", filename)
        else:
            log.info("Creating a new toxgate DB: %s", filename)
        self._accounts = shelve.open(str(filename))
        log.info("Accounts in the DB: %s", list(self._accounts.keys()))

    def get_by_jid(self, jid: JID) -> Optional[Account]:
        return self._accounts.get(jid.bare)

    def get_or_create(self, jid: JID) -> Account:
        account = self.get_by_jid(jid)
        if account is None:
            log.debug("New account: %s", jid.bare)
            account = Account(bare_jid=jid.bare)
            self.commit(account)
        return account

    def commit(self, account: Account):
        self._accounts[account.bare_jid] = account
        self._accounts.sync()

    def close(self):
        if self._accounts is None:
            return
        self._accounts.sync()
        self._accounts.close()
        self._accounts = None  # type: ignore


class AccountPreferences(Preferences):
    """
    The preferences of one account, written through to the store.
    """

    def __init__(self, store: AccountStore, jid: JID):
        self.store = store
        self.jid = JID(jid.bare)

    @property
    def account(self) -> Account:
        return self.store.get_or_create(self.jid)

    def get(self, key: str, default: Any = None) -> Any:
        return self.account.preferences.get(key, default)

    def set(self, key: str, value: Any) -> None:
        account = self.account
        account.preferences[key] = value
        self.store.commit(account)


account_store = AccountStore()

log = logging.getLogger(__name__)
