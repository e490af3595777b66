"""SessionKeyRegistry and OwnerAccount — per-principal session key state.

The registry is a bounded, insertion-ordered collection of
:class:`SessionKeyRecord` objects with unique ``key_identity`` values. The
owner account wraps one registry and one mint allowlist for a single
authority; no record is ever shared between accounts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from session_keys.constants import DEFAULT_PROGRAM_ID, MAX_SESSION_KEYS
from session_keys.errors import (
    SessionKeyAlreadyExistsError,
    SessionKeyNotFoundError,
    TooManySessionKeysError,
)
from session_keys.identity.derivation import derive_owner_account_address
from session_keys.session.allowlist import MintAllowlist
from session_keys.session.record import SessionKeyRecord


class SessionKeyRegistry:
    """Bounded ordered collection of session key records.

    Parameters
    ----------
    records:
        Initial records, in order. Must respect capacity and uniqueness.
    capacity:
        Maximum number of records held at once.
    """

    def __init__(
        self,
        records: Iterable[SessionKeyRecord] | None = None,
        capacity: int = MAX_SESSION_KEYS,
    ) -> None:
        self._capacity = capacity
        self._records: list[SessionKeyRecord] = []
        for record in records or []:
            self.add(record)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, record: SessionKeyRecord) -> None:
        """Append *record*.

        Raises
        ------
        TooManySessionKeysError
            If the registry is full.
        SessionKeyAlreadyExistsError
            If a record with the same identity is present, revoked or not.
        """
        if self.is_full:
            raise TooManySessionKeysError(self._capacity)
        if record.key_identity in self:
            raise SessionKeyAlreadyExistsError(record.key_identity)
        self._records.append(record)

    def retain(self, keep: Callable[[SessionKeyRecord], bool]) -> list[SessionKeyRecord]:
        """Drop every record for which *keep* is False.

        Survivors keep their relative order.

        Returns
        -------
        list[SessionKeyRecord]
            The removed records, in their former order.
        """
        kept: list[SessionKeyRecord] = []
        removed: list[SessionKeyRecord] = []
        for record in self._records:
            (kept if keep(record) else removed).append(record)
        self._records = kept
        return removed

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def find(self, key_identity: str) -> SessionKeyRecord | None:
        """Return the record for *key_identity*, or None."""
        for record in self._records:
            if record.key_identity == key_identity:
                return record
        return None

    def get(self, key_identity: str) -> SessionKeyRecord:
        """Return the record for *key_identity*.

        Raises
        ------
        SessionKeyNotFoundError
            If absent.
        """
        record = self.find(key_identity)
        if record is None:
            raise SessionKeyNotFoundError(key_identity)
        return record

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return len(self._records) >= self._capacity

    def records(self) -> list[SessionKeyRecord]:
        """Return the records in insertion order (shallow copy of the list)."""
        return list(self._records)

    def __iter__(self) -> Iterator[SessionKeyRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key_identity: object) -> bool:
        return any(r.key_identity == key_identity for r in self._records)


_FIXED_ACCOUNT_FIELDS = frozenset({"authority", "address", "bump"})


@dataclass
class OwnerAccount:
    """Session key state owned by one principal.

    Parameters
    ----------
    authority:
        Identity of the principal. Immutable.
    address:
        Derived identity of this account; seeds the delegate credentials.
    bump:
        Bump byte of the address derivation.
    session_keys:
        The principal's session key registry.
    allowed_mints:
        Mint allowlist for the token-delegate path (empty means unrestricted).
    """

    authority: str
    address: str
    bump: int
    session_keys: SessionKeyRegistry = field(default_factory=SessionKeyRegistry)
    allowed_mints: MintAllowlist = field(default_factory=MintAllowlist)

    def __setattr__(self, name: str, value: object) -> None:
        if name in _FIXED_ACCOUNT_FIELDS and name in self.__dict__:
            raise AttributeError(f"{name} cannot be changed after creation.")
        object.__setattr__(self, name, value)

    @classmethod
    def initialize(cls, authority: str, program_id: str = DEFAULT_PROGRAM_ID) -> "OwnerAccount":
        """Create an empty account for *authority* at its derived address."""
        derived = derive_owner_account_address(authority, program_id)
        return cls(authority=authority, address=derived.address, bump=derived.bump)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "authority": self.authority,
            "address": self.address,
            "bump": self.bump,
            "session_keys": [r.to_dict() for r in self.session_keys],
            "allowed_mints": self.allowed_mints.to_list(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "OwnerAccount":
        """Reconstruct from :meth:`to_dict` output."""
        return cls(
            authority=str(data["authority"]),
            address=str(data["address"]),
            bump=int(data["bump"]),  # type: ignore[arg-type]
            session_keys=SessionKeyRegistry(
                SessionKeyRecord.from_dict(dict(entry))  # type: ignore[arg-type]
                for entry in (data.get("session_keys") or [])  # type: ignore[union-attr]
            ),
            allowed_mints=MintAllowlist(
                str(m) for m in (data.get("allowed_mints") or [])  # type: ignore[union-attr]
            ),
        )


__all__ = ["OwnerAccount", "SessionKeyRegistry"]
