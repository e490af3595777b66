#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the minimal setup for session-keys: an owner account, one
limited session key, a transfer executed with it, and revocation.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install session-keys
"""
from __future__ import annotations

import session_keys
from session_keys import (
    CollectingSink,
    DelegatedActionExecutor,
    InMemoryAccountStore,
    InMemoryLedger,
    ManualClock,
    SessionKeyError,
    SessionKeyManager,
    SessionKeypair,
    SessionPermissions,
    TransferAction,
    random_identity,
)


def main() -> None:
    print(f"session-keys version: {session_keys.__version__}")

    store, clock, ledger, sink = (
        InMemoryAccountStore(),
        ManualClock(unix_timestamp=1_700_000_000, height=250_000_000),
        InMemoryLedger(),
        CollectingSink(),
    )
    manager = SessionKeyManager(store, clock, sink=sink)
    executor = DelegatedActionExecutor(store, clock, ledger, sink=sink)

    # Step 1: Create the owner account and fund it
    owner, agent = SessionKeypair.generate(), SessionKeypair.generate()
    account = manager.initialize_owner_account(owner.identity)
    ledger.credit(owner.identity, 1_000)
    ledger.authorize(owner.identity, account.address)
    print(f"Owner account: {account.address}")

    # Step 2: Issue a one-hour session key capped at 300 units per transfer
    permissions = SessionPermissions(can_transfer=True, max_transfer_amount=300)
    record = manager.create(
        owner.identity,
        agent.identity,
        expires_at=clock.now().unix_timestamp + 3600,
        permissions=permissions,
        label="quickstart-bot",
    )
    print(f"Session key {record.key_identity[:12]}... {record.expiration_description()}")

    # Step 3: Transfer with the session key
    recipient = random_identity()
    executor.execute(owner.identity, agent.identity, TransferAction(recipient, 250))
    print(f"Recipient balance: {ledger.balance(recipient)}")

    # Step 4: Over the cap is refused
    try:
        executor.execute(owner.identity, agent.identity, TransferAction(recipient, 301))
    except SessionKeyError as exc:
        print(f"Refused: {exc}")

    # Step 5: Revoke and confirm the key no longer works
    manager.revoke(owner.identity, agent.identity)
    print(f"Key valid after revoke: {manager.is_key_valid(owner.identity, agent.identity)}")
    print(f"Events emitted: {[event.event_type for event in sink.events]}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
