"""TokenDelegateService — token movement through a derived delegate credential.

The owner approves a per-mint delegate whose identity is derived from the
owner account address and the mint. A session key can later move tokens as
that delegate: the token program is handed the derivation seeds instead of
the owner's signature. Every entry point recomputes the delegate identity
and refuses a caller-supplied value that differs.

Example
-------
::

    service = TokenDelegateService(store, clock, token_program)
    delegate = service.expected_delegate(owner, mint).address
    service.approve(owner, owner_token_account, mint, delegate, amount=1_000)
    service.delegated_transfer(
        owner, session_key, owner_token_account, recipient_token_account,
        mint, delegate, amount=250,
    )
"""
from __future__ import annotations

import logging
from typing import Iterable

from session_keys.audit.events import (
    AllowedMintsUpdated,
    NotificationSink,
    TokenDelegateApproved,
    TokenDelegatedTransfer,
    TokenDelegateRevoked,
    notify,
)
from session_keys.errors import InsufficientPermissionsError
from session_keys.identity.derivation import DelegateCredentialBinder, DerivedAddress
from session_keys.ports.clock import Clock
from session_keys.ports.token_program import TokenProgram
from session_keys.session.executor import authorize_session_key
from session_keys.session.permissions import TransferAction, require_permission
from session_keys.session.record import SessionKeyRecord
from session_keys.session.store import AccountStore

logger = logging.getLogger(__name__)


class TokenDelegateService:
    """Approve, use and revoke derived token delegates for owner accounts.

    Parameters
    ----------
    store:
        Owner account storage.
    clock:
        Time and height source for the session-key gate.
    token_program:
        External token-transfer mechanism.
    binder:
        Delegate credential binder. Defaults to the default program id.
    sink:
        Optional notification sink.
    """

    def __init__(
        self,
        store: AccountStore,
        clock: Clock,
        token_program: TokenProgram,
        binder: DelegateCredentialBinder | None = None,
        sink: NotificationSink | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._token_program = token_program
        self._binder = binder or DelegateCredentialBinder()
        self._sink = sink

    def expected_delegate(self, authority: str, mint: str) -> DerivedAddress:
        """Return the delegate credential for *authority*'s account and *mint*."""
        with self._store.transaction(authority, write=False) as account:
            return self._binder.expected(account.address, mint)

    # ------------------------------------------------------------------
    # Owner-signed
    # ------------------------------------------------------------------

    def approve(
        self,
        authority: str,
        token_account: str,
        mint: str,
        delegate: str,
        amount: int,
    ) -> DerivedAddress:
        """Grant the derived delegate *amount* spending rights on *token_account*.

        Raises
        ------
        InsufficientPermissionsError
            If *delegate* is not the derived credential, or the token account
            is not owned by *authority* or holds another mint.
        MintNotAllowedError
            If the allowlist is non-empty and excludes *mint*.
        TokenProgramError
            Propagated unchanged from the token program.
        ValueError
            If *amount* is negative.
        """
        if amount < 0:
            raise ValueError("approve amount must be non-negative.")
        with self._store.transaction(authority, write=False) as account:
            derived = self._binder.bind(account.address, mint, delegate)
            holding = self._token_program.get_account(token_account)
            if holding.owner != authority:
                logger.warning("Token account %s is not owned by %s", token_account, authority)
                raise InsufficientPermissionsError("token account is not owned by the authority")
            if holding.mint != mint:
                logger.warning("Token account %s does not hold mint %s", token_account, mint)
                raise InsufficientPermissionsError("token account mint does not match")
            account.allowed_mints.require(mint)
            self._token_program.approve(token_account, derived.address, authority, amount)

        logger.info(
            "Approved delegate %s for %d of %s on %s", derived.address, amount, mint, token_account
        )
        notify(
            self._sink,
            TokenDelegateApproved(
                authority=authority,
                token_account=token_account,
                mint=mint,
                delegate=derived.address,
                amount=amount,
            ),
        )
        return derived

    def revoke_delegate(self, authority: str, token_account: str) -> None:
        """Clear any delegate on *token_account*. Owner-signed, otherwise unconditional."""
        with self._store.transaction(authority, write=False):
            self._token_program.revoke(token_account, authority)

        logger.info("Revoked delegate on %s for %s", token_account, authority)
        notify(self._sink, TokenDelegateRevoked(authority=authority, token_account=token_account))

    def update_allowed_mints(self, authority: str, mints: Iterable[str]) -> list[str]:
        """Replace the owner's mint allowlist wholesale.

        Raises
        ------
        TooManyAllowedMintsError
            If more than ``MAX_ALLOWED_MINTS`` are supplied.
        """
        with self._store.transaction(authority) as account:
            account.allowed_mints.replace(mints)
            allowed = account.allowed_mints.to_list()

        logger.info("Allowed mints for %s set to %d entries", authority, len(allowed))
        notify(self._sink, AllowedMintsUpdated(authority=authority, mints=tuple(allowed)))
        return allowed

    # ------------------------------------------------------------------
    # Session-key signed
    # ------------------------------------------------------------------

    def delegated_transfer(
        self,
        authority: str,
        session_signer: str,
        from_token: str,
        to_token: str,
        mint: str,
        delegate: str,
        amount: int,
    ) -> SessionKeyRecord:
        """Move *amount* of *mint* as the derived delegate, authorized by a session key.

        The session-key gate (lookup, revoked, expired) runs first, then the
        transfer permission and cap, then the delegate binding and the mint
        allowlist.

        Raises
        ------
        SessionKeyNotFoundError, SessionKeyRevokedError, SessionKeyExpiredError
            From the session-key gate.
        InsufficientPermissionsError
            If the key may not transfer, *amount* exceeds its cap, or
            *delegate* is not the derived credential.
        MintNotAllowedError
            If the allowlist is non-empty and excludes *mint*.
        TokenProgramError
            Propagated unchanged from the token program.
        """
        clock = self._clock.now()
        with self._store.transaction(authority, write=False) as account:
            record = authorize_session_key(account, session_signer, clock)
            require_permission(record.permissions, TransferAction(recipient=to_token, amount=amount))
            derived = self._binder.bind(account.address, mint, delegate)
            account.allowed_mints.require(mint)
            decimals = self._token_program.get_mint(mint).decimals
            self._token_program.transfer_checked(
                source=from_token,
                mint=mint,
                destination=to_token,
                authority=derived.address,
                amount=amount,
                decimals=decimals,
                signer_seeds=derived.signer_seeds,
            )

        logger.info(
            "Session key %s moved %d of %s from %s to %s",
            session_signer,
            amount,
            mint,
            from_token,
            to_token,
        )
        notify(
            self._sink,
            TokenDelegatedTransfer(
                authority=authority,
                key_identity=session_signer,
                from_token=from_token,
                to_token=to_token,
                mint=mint,
                amount=amount,
            ),
        )
        return record


__all__ = ["TokenDelegateService"]
