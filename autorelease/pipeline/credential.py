"""Registry credential with a bounded lifetime.

The token is held in memory only, never rendered by ``repr``/``str``, and
wiped when the ``credential_scope`` that owns it closes, whatever the
outcome of the stages inside it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager

_MASK = "***"


class Credential:
    __slots__ = ("_secret",)

    def __init__(self, secret: str) -> None:
        self._secret: str | None = secret

    @classmethod
    def from_env(cls, env: Mapping[str, str], name: str) -> Credential | None:
        value = env.get(name)
        if value is None:
            return None
        return cls(value)

    @property
    def is_discarded(self) -> bool:
        return self._secret is None

    def is_blank(self) -> bool:
        return self._secret is None or not self._secret.strip()

    def reveal(self) -> str:
        """Return the secret for handing to a subprocess environment.

        Raises:
            RuntimeError: The credential was already discarded.
        """
        if self._secret is None:
            raise RuntimeError("credential used after its scope closed")
        return self._secret.strip()

    def discard(self) -> None:
        self._secret = None

    def redact(self, text: str) -> str:
        """Mask any occurrence of the secret in ``text``."""
        if self._secret is None or not self._secret.strip():
            return text
        return text.replace(self._secret.strip(), _MASK)

    def __repr__(self) -> str:
        state = "discarded" if self._secret is None else _MASK
        return f"Credential({state})"

    __str__ = __repr__


@contextmanager
def credential_scope(credential: Credential | None) -> Iterator[Credential | None]:
    """Own ``credential`` for the duration of the block, then discard it."""
    try:
        yield credential
    finally:
        if credential is not None:
            credential.discard()
