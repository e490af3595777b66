"""CLI entry point for session-keys.

Invoked as::

    session-keys [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m session_keys.cli.main

Commands
--------
account init      Create an owner account for an authority
account show      Show an owner account and its allowlist
key create        Issue a session key
key update        Change a session key's expiry or permissions
key revoke        Revoke one session key
key revoke-all    Revoke every session key of an owner
key prune         Remove revoked and expired session keys
key list          List session keys with their status
mints set         Replace an owner's mint allowlist
keygen            Generate an Ed25519 session keypair
version           Show version information

Owner accounts are kept as JSON files under ``--store-dir`` (default
``$SESSION_KEYS_STORE_DIR`` or ``./.session-keys``).
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from session_keys.audit.logger import SessionAuditLogger
from session_keys.config import EngineSettings
from session_keys.errors import SessionKeyError
from session_keys.ports.clock import SystemClock
from session_keys.session.lifecycle import SessionKeyManager
from session_keys.session.permissions import PermissionPreset, permissions_from_preset
from session_keys.session.record import ExpirationType, SessionPermissions
from session_keys.session.store import FilesystemAccountStore
from session_keys.session.validity import current_reference

console = Console()

DEFAULT_STORE_DIR = Path(".session-keys")


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="session-keys")
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding owner account JSON files.",
)
@click.option(
    "--audit-log",
    type=click.Path(dir_okay=False),
    default=None,
    help="Append session-key events to this JSONL file.",
)
@click.pass_context
def cli(ctx: click.Context, store_dir: str | None, audit_log: str | None) -> None:
    """Scoped, expiring, revocable session keys for owner accounts"""
    try:
        settings = EngineSettings.from_env()
    except ValueError as exc:
        console.print(f"[red]Error:[/red] invalid environment configuration: {exc}")
        sys.exit(1)
    updates: dict[str, object] = {}
    if store_dir:
        updates["store_dir"] = Path(store_dir)
    elif settings.store_dir is None:
        updates["store_dir"] = DEFAULT_STORE_DIR
    if audit_log:
        updates["audit_log_path"] = Path(audit_log)
    settings = settings.model_copy(update=updates)
    settings.configure_logging()
    ctx.obj = settings


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from session_keys import __version__
    from session_keys.constants import MAX_ALLOWED_MINTS, MAX_SESSION_KEYS

    console.print(f"[bold]session-keys[/bold] v{__version__}")
    console.print(f"  Max session keys:  {MAX_SESSION_KEYS}")
    console.print(f"  Max allowed mints: {MAX_ALLOWED_MINTS}")


@cli.command(name="keygen")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the keypair JSON (identity and hex private key) to this path.",
)
def keygen_command(output: str | None) -> None:
    """Generate an Ed25519 keypair usable as a session key."""
    from session_keys.identity.keypair import SessionKeypair

    keypair = SessionKeypair.generate()
    if output:
        payload = {"identity": keypair.identity, "private_key": keypair.private_bytes.hex()}
        Path(output).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        console.print(f"[green]Keypair written to[/green] {output}")
    console.print(f"  Identity: [bold]{keypair.identity}[/bold]")


# ------------------------------------------------------------------
# account command group
# ------------------------------------------------------------------


@cli.group(name="account")
def account_group() -> None:
    """Manage owner accounts."""


@account_group.command(name="init")
@click.argument("authority")
@click.pass_obj
def account_init_command(settings: EngineSettings, authority: str) -> None:
    """Create an empty owner account for AUTHORITY."""
    manager = _manager(settings)
    try:
        account = manager.initialize_owner_account(authority)
    except (SessionKeyError, ValueError) as exc:
        _fail(exc)

    console.print(f"[green]Initialized[/green] owner account for [bold]{authority}[/bold]")
    console.print(f"  Address: {account.address}")
    console.print(f"  Bump:    {account.bump}")


@account_group.command(name="show")
@click.argument("authority")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON.")
@click.pass_obj
def account_show_command(settings: EngineSettings, authority: str, as_json: bool) -> None:
    """Show the owner account of AUTHORITY."""
    manager = _manager(settings)
    try:
        account = manager.get_account(authority)
    except SessionKeyError as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps(account.to_dict()))
        return

    active = len(manager.active_keys(authority))
    console.print(f"[bold]Owner account[/bold] {account.address}")
    console.print(f"  Authority:     {account.authority}")
    console.print(
        f"  Session keys:  {len(account.session_keys)}/{account.session_keys.capacity}"
        f" ({active} active)"
    )
    mints = account.allowed_mints.to_list()
    console.print(f"  Allowed mints: {', '.join(mints) if mints else '(unrestricted)'}")


# ------------------------------------------------------------------
# key command group
# ------------------------------------------------------------------


@cli.group(name="key")
def key_group() -> None:
    """Manage session keys."""


@key_group.command(name="create")
@click.argument("authority")
@click.argument("key_identity")
@click.option("--expires-in", type=int, default=None, help="Lifetime relative to now.")
@click.option("--expires-at", type=int, default=None, help="Absolute expiry threshold.")
@click.option(
    "--block-height",
    is_flag=True,
    default=False,
    help="Measure expiry in block height instead of unix seconds.",
)
@click.option(
    "--preset",
    type=click.Choice([p.value for p in PermissionPreset]),
    default=None,
    help="Permission template. Overrides the individual permission flags.",
)
@click.option("--can-transfer", is_flag=True, default=False)
@click.option("--can-delegate", is_flag=True, default=False)
@click.option("--can-execute-custom", is_flag=True, default=False)
@click.option("--max-amount", type=int, default=0, show_default=True, help="0 means unlimited.")
@click.option("--custom-flags", type=int, default=0, show_default=True)
@click.option("--label", default="", help="Name for the key (at most 32 UTF-8 bytes).")
@click.pass_obj
def key_create_command(
    settings: EngineSettings,
    authority: str,
    key_identity: str,
    expires_in: int | None,
    expires_at: int | None,
    block_height: bool,
    preset: str | None,
    can_transfer: bool,
    can_delegate: bool,
    can_execute_custom: bool,
    max_amount: int,
    custom_flags: int,
    label: str,
) -> None:
    """Issue session key KEY_IDENTITY for AUTHORITY."""
    manager = _manager(settings)
    expiration_type = ExpirationType.BLOCK_HEIGHT if block_height else ExpirationType.TIME
    try:
        threshold = _resolve_expiry(manager, expiration_type, expires_in, expires_at, required=True)
        if preset is not None:
            permissions = permissions_from_preset(preset)
        else:
            permissions = SessionPermissions(
                can_transfer=can_transfer,
                can_delegate=can_delegate,
                can_execute_custom=can_execute_custom,
                max_transfer_amount=max_amount,
                custom_flags=custom_flags,
            )
        record = manager.create(
            authority=authority,
            key_identity=key_identity,
            expires_at=threshold,  # type: ignore[arg-type]
            expiration_type=expiration_type,
            permissions=permissions,
            label=label,
        )
    except (SessionKeyError, ValueError) as exc:
        _fail(exc)

    console.print(f"[green]Created[/green] session key [bold]{key_identity}[/bold]")
    console.print(f"  {record.expiration_description()}")
    console.print(f"  Permissions: {_describe_permissions(record.permissions)}")


@key_group.command(name="update")
@click.argument("authority")
@click.argument("key_identity")
@click.option("--expires-in", type=int, default=None, help="New lifetime relative to now.")
@click.option("--expires-at", type=int, default=None, help="New absolute expiry threshold.")
@click.option(
    "--preset",
    type=click.Choice([p.value for p in PermissionPreset]),
    default=None,
    help="Replace the permission set with this template.",
)
@click.pass_obj
def key_update_command(
    settings: EngineSettings,
    authority: str,
    key_identity: str,
    expires_in: int | None,
    expires_at: int | None,
    preset: str | None,
) -> None:
    """Change the expiry and/or permissions of KEY_IDENTITY."""
    manager = _manager(settings)
    try:
        current = manager.get_key(authority, key_identity)
        threshold = _resolve_expiry(
            manager, current.expiration_type, expires_in, expires_at, required=False
        )
        record = manager.update(
            authority=authority,
            key_identity=key_identity,
            expires_at=threshold,
            permissions=permissions_from_preset(preset) if preset is not None else None,
        )
    except (SessionKeyError, ValueError) as exc:
        _fail(exc)

    console.print(f"[green]Updated[/green] session key [bold]{key_identity}[/bold]")
    console.print(f"  {record.expiration_description()}")
    console.print(f"  Permissions: {_describe_permissions(record.permissions)}")


@key_group.command(name="revoke")
@click.argument("authority")
@click.argument("key_identity")
@click.pass_obj
def key_revoke_command(settings: EngineSettings, authority: str, key_identity: str) -> None:
    """Revoke KEY_IDENTITY."""
    try:
        _manager(settings).revoke(authority, key_identity)
    except SessionKeyError as exc:
        _fail(exc)
    console.print(f"[green]Revoked[/green] session key [bold]{key_identity}[/bold]")


@key_group.command(name="revoke-all")
@click.argument("authority")
@click.pass_obj
def key_revoke_all_command(settings: EngineSettings, authority: str) -> None:
    """Revoke every session key of AUTHORITY."""
    try:
        count = _manager(settings).revoke_all(authority)
    except SessionKeyError as exc:
        _fail(exc)
    console.print(f"[green]Revoked[/green] {count} session key(s).")


@key_group.command(name="prune")
@click.argument("authority")
@click.pass_obj
def key_prune_command(settings: EngineSettings, authority: str) -> None:
    """Remove revoked and expired session keys of AUTHORITY."""
    try:
        removed = _manager(settings).prune(authority)
    except SessionKeyError as exc:
        _fail(exc)
    console.print(f"[green]Pruned[/green] {removed} session key(s).")


@key_group.command(name="list")
@click.argument("authority")
@click.option("--active-only", is_flag=True, default=False, help="Hide revoked and expired keys.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON.")
@click.pass_obj
def key_list_command(
    settings: EngineSettings, authority: str, active_only: bool, as_json: bool
) -> None:
    """List the session keys of AUTHORITY."""
    manager = _manager(settings)
    try:
        statuses = manager.active_keys(authority) if active_only else manager.list_keys(authority)
    except SessionKeyError as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps([status.to_dict() for status in statuses]))
        return

    if not statuses:
        console.print("[yellow]No session keys.[/yellow]")
        return

    table = Table(title=f"Session Keys for {authority}", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Expires At", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Permissions")
    table.add_column("Status")

    for status in statuses:
        record = status.record
        if status.is_revoked:
            state = "[red]revoked[/red]"
        elif status.is_expired:
            state = "[yellow]expired[/yellow]"
        else:
            state = "[green]active[/green]"
        table.add_row(
            record.key_identity,
            record.label_text(),
            record.expiration_type.value,
            str(record.expires_at),
            str(status.remaining),
            _describe_permissions(record.permissions),
            state,
        )

    console.print(table)


# ------------------------------------------------------------------
# mints command group
# ------------------------------------------------------------------


@cli.group(name="mints")
def mints_group() -> None:
    """Manage the mint allowlist."""


@mints_group.command(name="set")
@click.argument("authority")
@click.argument("mints", nargs=-1)
@click.pass_obj
def mints_set_command(settings: EngineSettings, authority: str, mints: tuple[str, ...]) -> None:
    """Replace the allowlist of AUTHORITY with MINTS (none clears it)."""
    from session_keys.ports.token_program import InMemoryTokenProgram
    from session_keys.tokens.delegate import TokenDelegateService

    service = TokenDelegateService(
        store=_store(settings),
        clock=SystemClock(genesis=0.0),
        token_program=InMemoryTokenProgram(settings.program_id),
        sink=_sink(settings),
    )
    try:
        allowed = service.update_allowed_mints(authority, mints)
    except SessionKeyError as exc:
        _fail(exc)

    if allowed:
        console.print(f"[green]Allowed mints set[/green] ({len(allowed)}):")
        for mint in allowed:
            console.print(f"  {mint}")
    else:
        console.print("[green]Allowlist cleared[/green]; all mints are permitted.")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _store(settings: EngineSettings) -> FilesystemAccountStore:
    return FilesystemAccountStore(settings.store_dir or DEFAULT_STORE_DIR)


def _sink(settings: EngineSettings) -> SessionAuditLogger | None:
    if settings.audit_log_path is None:
        return None
    return SessionAuditLogger(log_path=settings.audit_log_path)


def _manager(settings: EngineSettings) -> SessionKeyManager:
    # Height counts 0.4s slots since the epoch so it agrees across invocations.
    return SessionKeyManager(
        store=_store(settings),
        clock=SystemClock(genesis=0.0),
        sink=_sink(settings),
        program_id=settings.program_id,
    )


def _resolve_expiry(
    manager: SessionKeyManager,
    expiration_type: ExpirationType,
    expires_in: int | None,
    expires_at: int | None,
    required: bool,
) -> int | None:
    if expires_in is not None and expires_at is not None:
        raise ValueError("use either --expires-in or --expires-at, not both")
    if expires_in is not None:
        return current_reference(expiration_type, manager.now()) + expires_in
    if expires_at is None and required:
        raise ValueError("one of --expires-in or --expires-at is required")
    return expires_at


def _describe_permissions(permissions: SessionPermissions) -> str:
    granted = [
        name
        for name, flag in (
            ("transfer", permissions.can_transfer),
            ("delegate", permissions.can_delegate),
            ("custom", permissions.can_execute_custom),
        )
        if flag
    ]
    if not granted:
        return "(none)"
    text = ", ".join(granted)
    if permissions.can_transfer:
        cap = "unlimited" if permissions.is_unlimited else str(permissions.max_transfer_amount)
        text += f" (cap {cap})"
    return text


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
