"""DelegatedActionExecutor — run an action on the owner's behalf with a session key.

Checks run in a fixed order and stop at the first failure:

1. the signer's record exists (``SessionKeyNotFoundError``)
2. it is not revoked (``SessionKeyRevokedError``)
3. it is not expired (``SessionKeyExpiredError``)
4. its permission set admits the action (``InsufficientPermissionsError``)

For a transfer the source and destination supplied by the caller are then
compared to the owner's authority and the action's recipient before the
ledger is asked to move anything. Delegate and custom actions are
acknowledged without further effect.
"""
from __future__ import annotations

import logging

from session_keys.audit.events import NotificationSink, SessionActionExecuted, notify
from session_keys.errors import (
    InsufficientPermissionsError,
    SessionKeyExpiredError,
    SessionKeyRevokedError,
)
from session_keys.ports.clock import Clock, ClockReading
from session_keys.ports.ledger import ValueTransfer
from session_keys.session.permissions import SessionAction, TransferAction, require_permission
from session_keys.session.record import SessionKeyRecord
from session_keys.session.registry import OwnerAccount
from session_keys.session.store import AccountStore
from session_keys.session.validity import is_expired

logger = logging.getLogger(__name__)


def authorize_session_key(
    account: OwnerAccount, key_identity: str, clock: ClockReading
) -> SessionKeyRecord:
    """Return the live record for *key_identity* or raise.

    Lookup, revocation and expiry are checked in that order. Revocation is
    reported even when the key has also expired.

    Raises
    ------
    SessionKeyNotFoundError
    SessionKeyRevokedError
    SessionKeyExpiredError
    """
    record = account.session_keys.get(key_identity)
    if record.is_revoked:
        logger.warning("Rejected revoked session key %s for %s", key_identity, account.authority)
        raise SessionKeyRevokedError(key_identity)
    if is_expired(record, clock):
        logger.warning("Rejected expired session key %s for %s", key_identity, account.authority)
        raise SessionKeyExpiredError(key_identity)
    return record


class DelegatedActionExecutor:
    """Executes session-key actions against an owner's account.

    Parameters
    ----------
    store:
        Owner account storage; the executor only reads from it.
    clock:
        Time and height source, read once per call.
    ledger:
        Native value-transfer collaborator used by transfer actions.
    sink:
        Optional notification sink.
    """

    def __init__(
        self,
        store: AccountStore,
        clock: Clock,
        ledger: ValueTransfer,
        sink: NotificationSink | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ledger = ledger
        self._sink = sink

    def execute(
        self,
        authority: str,
        session_signer: str,
        action: SessionAction,
        source: str | None = None,
        destination: str | None = None,
    ) -> SessionKeyRecord:
        """Execute *action* as *session_signer* on behalf of *authority*.

        Parameters
        ----------
        authority:
            Owner whose account holds the session key.
        session_signer:
            Already-authenticated identity of the ephemeral key.
        action:
            The requested action.
        source, destination:
            Accounts the caller wants a transfer to move value between.
            Default to the owner and the action's recipient. Ignored for
            non-transfer actions.

        Returns
        -------
        SessionKeyRecord
            The record that authorized the action.

        Raises
        ------
        SessionKeyNotFoundError, SessionKeyRevokedError, SessionKeyExpiredError
            From the validity gate.
        InsufficientPermissionsError
            If the permission set refuses the action, or a transfer names a
            source other than the owner or a destination other than the
            recipient.
        LedgerError
            Propagated unchanged from the ledger.
        """
        clock = self._clock.now()
        with self._store.transaction(authority, write=False) as account:
            record = authorize_session_key(account, session_signer, clock)
            require_permission(record.permissions, action)
            if isinstance(action, TransferAction):
                self._transfer(account, action, source, destination)

        logger.info(
            "Session key %s executed %s for %s",
            session_signer,
            type(action).__name__,
            authority,
        )
        notify(
            self._sink,
            SessionActionExecuted(
                authority=authority,
                key_identity=session_signer,
                action=action.to_dict(),
                timestamp=clock.unix_timestamp,
            ),
        )
        return record

    def _transfer(
        self,
        account: OwnerAccount,
        action: TransferAction,
        source: str | None,
        destination: str | None,
    ) -> None:
        source = account.authority if source is None else source
        destination = action.recipient if destination is None else destination
        if source != account.authority:
            logger.warning("Transfer source %s is not the owner %s", source, account.authority)
            raise InsufficientPermissionsError("transfer source is not the owner")
        if destination != action.recipient:
            logger.warning(
                "Transfer destination %s does not match recipient %s", destination, action.recipient
            )
            raise InsufficientPermissionsError("transfer destination does not match recipient")
        self._ledger.transfer(source, destination, action.amount, spender=account.address)


__all__ = ["DelegatedActionExecutor", "authorize_session_key"]
