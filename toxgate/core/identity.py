from typing import NamedTuple

from ..util.error import InvalidIdentityEncoding

PUBLIC_KEY_SIZE = 32


class PeerIdentity(NamedTuple):
    """
    The public key of a Tox network participant.

    Its textual form (``str(identity)``) is used as the contact identifier on the
    contact-list side.
    """

    public_key: bytes

    @classmethod
    def from_hex(cls, hex_string: str) -> "PeerIdentity":
        """
        :raises InvalidIdentityEncoding: if the string is not exactly
            ``2 * PUBLIC_KEY_SIZE`` hexadecimal digits
        """
        if len(hex_string) != PUBLIC_KEY_SIZE * 2:
            raise InvalidIdentityEncoding(f"Invalid key length: {hex_string!r}")
        try:
            public_key = bytes.fromhex(hex_string)
        except ValueError as e:
            raise InvalidIdentityEncoding(f"Invalid key: {hex_string!r}") from e
        # fromhex() skips whitespace
        if len(public_key) != PUBLIC_KEY_SIZE:
            raise InvalidIdentityEncoding(f"Invalid key: {hex_string!r}")
        return cls(public_key)

    @classmethod
    def from_bytes(cls, public_key: bytes) -> "PeerIdentity":
        if len(public_key) != PUBLIC_KEY_SIZE:
            raise InvalidIdentityEncoding(
                f"Expected {PUBLIC_KEY_SIZE} bytes, got {len(public_key)}"
            )
        return cls(bytes(public_key))

    @property
    def hex(self) -> str:
        return self.public_key.hex()

    def __str__(self):
        return self.hex

    def __repr__(self):
        return f"<PeerIdentity {self.hex[:8]}…>"
