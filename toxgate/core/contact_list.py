"""
What the engine needs from the contact-list client it is bridged to.

Contacts are identified by the hex form of their :class:`.PeerIdentity`.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterable, Optional


class ContactList(ABC):
    @abstractmethod
    def has_contact(self, identifier: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def contacts(self) -> Iterable[str]:
        raise NotImplementedError

    @abstractmethod
    def add_contact(self, identifier: str, alias: Optional[str] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_contact(self, identifier: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_alias(self, identifier: str, alias: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def push_presence(
        self, identifier: str, status_id: str, message: Optional[str] = None
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def deliver_message(
        self, identifier: str, text: str, when: Optional[datetime] = None
    ) -> None:
        """
        :param when: set for messages that were held back, None for live ones
        """
        raise NotImplementedError

    @abstractmethod
    def request_yes_no(
        self,
        title: str,
        primary: str,
        secondary: Optional[str],
        on_yes: Callable[[], None],
        on_no: Callable[[], None],
    ) -> None:
        """
        Ask the user a question. Exactly one of the continuations is expected
        to be called later, possibly never.
        """
        raise NotImplementedError

    @abstractmethod
    def abandon_prompts(self) -> None:
        """
        Close every open question. Their continuations must not be called
        anymore.
        """
        raise NotImplementedError

    @abstractmethod
    def notify_error(self, title: str, text: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_progress(self, text: str, step: int, total: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_display_identity(self, identifier: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_display_name(self, name: str) -> None:
        raise NotImplementedError


class Preferences(ABC):
    """
    Per-account string settings that survive restarts.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError
