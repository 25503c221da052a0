"""
Vault CLI — command line front-end for a local secrets vault.

Every command except ``init`` needs the master key, supplied with
``--key-path`` (base64 key file) or ``--key-env`` (name of an environment
variable holding the base64 key). Any vault error exits non-zero.
"""
import base64
import logging
from pathlib import Path
from typing import Optional

import click

from .exceptions import VaultError
from .vault.config import (
    DEFAULT_VAULT_PATH,
    KeySource,
    generate_master_key,
    write_key_file,
)
from .vault.store import SecretVault
from .version import __version__


class Cfg:
    """Global options shared by every command."""

    def __init__(
        self,
        vault_path: Path,
        key_path: Optional[Path],
        key_env: Optional[str],
        audit_path: Optional[Path],
    ):
        self.vault_path = vault_path
        self.key_path = key_path
        self.key_env = key_env
        self.audit_path = audit_path

    def key_source(self) -> KeySource:
        if self.key_path is not None:
            return KeySource.from_file(self.key_path)
        if self.key_env:
            return KeySource.from_env(self.key_env)
        die("Master key must be provided via --key-path or --key-env")

    def open_vault(self) -> SecretVault:
        try:
            return SecretVault(self.key_source(), self.vault_path, self.audit_path)
        except VaultError as err:
            die(str(err))


def die(msg: str) -> None:
    raise click.ClickException(msg)


def emit_key(encoded: str, key_out: Optional[Path], label: str) -> None:
    """Write a generated key to key_out, or print it."""
    if key_out is not None:
        try:
            write_key_file(key_out, encoded)
        except VaultError as err:
            die(str(err))
        click.echo(f"{label} written to {key_out}")
    else:
        click.echo(f"{label} (SAVE THIS SECURELY!):")
        click.echo(encoded)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__, prog_name="secrets-vault")
@click.option(
    "--vault-path", "-v",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_VAULT_PATH,
    envvar="VAULT_PATH",
    show_default=True,
    help="Path to the vault file.",
)
@click.option(
    "--key-path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="VAULT_KEY_PATH",
    default=None,
    help="Path to the base64 master key file.",
)
@click.option(
    "--key-env",
    default=None,
    help="Environment variable containing the base64 master key.",
)
@click.option(
    "--audit-path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="VAULT_AUDIT_PATH",
    default=None,
    help="Path to the audit log file (JSON lines).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    envvar="VAULT_LOG_LEVEL",
    default="WARNING",
    show_default=True,
)
@click.pass_context
def cli(
    ctx: click.Context,
    vault_path: Path,
    key_path: Optional[Path],
    key_env: Optional[str],
    audit_path: Optional[Path],
    log_level: str,
) -> None:
    """secrets-vault — versioned secrets encrypted under one master key."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Cfg(
        vault_path=vault_path,
        key_path=key_path,
        key_env=key_env,
        audit_path=audit_path,
    )


@cli.command("init")
@click.option(
    "--key-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated master key here instead of printing it.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing vault.")
@click.pass_obj
def cmd_init(cfg: Cfg, key_out: Optional[Path], force: bool) -> None:
    """Generate a master key and create an empty vault."""
    if cfg.vault_path.exists() and not force:
        die(f"Vault {cfg.vault_path} already exists (use --force to overwrite)")
    encoded = generate_master_key()
    emit_key(encoded, key_out, "Master key")
    try:
        if cfg.vault_path.exists():
            cfg.vault_path.unlink()
        with SecretVault(
            KeySource.from_bytes(base64.b64decode(encoded)),
            cfg.vault_path,
            cfg.audit_path,
        ) as vault:
            vault.save()
    except OSError as err:
        die(f"Failed to remove existing vault {cfg.vault_path}: {err}")
    except VaultError as err:
        die(str(err))
    click.echo(f"Initialized empty vault at {cfg.vault_path}")


@cli.command("set")
@click.argument("name", type=str)
@click.argument("value", type=str)
@click.pass_obj
def cmd_set(cfg: Cfg, name: str, value: str) -> None:
    """Store VALUE as a new version of secret NAME."""
    with cfg.open_vault() as vault:
        try:
            version = vault.set(name, value)
        except VaultError as err:
            die(str(err))
    click.echo(f"Secret '{name}' set (version {version})")


@cli.command("get")
@click.argument("name", type=str)
@click.option("--version", "version", type=int, default=None, help="Specific version.")
@click.pass_obj
def cmd_get(cfg: Cfg, name: str, version: Optional[int]) -> None:
    """Print the latest (or a given) version of secret NAME."""
    with cfg.open_vault() as vault:
        try:
            if version is None:
                value = vault.get(name)
            else:
                value = vault.get_version(name, version)
        except VaultError as err:
            die(str(err))
    if value is None:
        die(f"Secret '{name}' not found")
    click.echo(value.decode("utf-8", "replace"))


@cli.command("delete")
@click.argument("name", type=str)
@click.pass_obj
def cmd_delete(cfg: Cfg, name: str) -> None:
    """Delete secret NAME and all its versions."""
    with cfg.open_vault() as vault:
        try:
            vault.delete(name)
        except VaultError as err:
            die(str(err))
    click.echo(f"Secret '{name}' deleted")


@cli.command("list-versions")
@click.argument("name", type=str)
@click.pass_obj
def cmd_list_versions(cfg: Cfg, name: str) -> None:
    """List the version numbers of secret NAME."""
    with cfg.open_vault() as vault:
        versions = vault.list_versions(name)
    if not versions:
        click.echo(f"No versions found for '{name}'")
        return
    click.echo(f"Versions for '{name}': {', '.join(str(v) for v in versions)}")


@cli.command("list")
@click.pass_obj
def cmd_list(cfg: Cfg) -> None:
    """List stored secret names."""
    with cfg.open_vault() as vault:
        names = sorted(vault.list_keys())
    for name in names:
        click.echo(name)


@cli.command("rotate")
@click.option(
    "--new-key-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Rotate to the key in this file instead of generating one.",
)
@click.option(
    "--new-key-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated key here instead of printing it (not with --new-key-path).",
)
@click.pass_obj
def cmd_rotate(cfg: Cfg, new_key_path: Optional[Path], new_key_out: Optional[Path]) -> None:
    """Re-encrypt every secret under a new master key."""
    if new_key_path is not None and new_key_out is not None:
        die("--new-key-out only applies to a generated key; drop it or --new-key-path")
    with cfg.open_vault() as vault:
        if new_key_path is not None:
            source = KeySource.from_file(new_key_path)
        else:
            encoded = generate_master_key()
            # the new key must be saved before the vault depends on it
            emit_key(encoded, new_key_out, "New master key")
            source = KeySource.from_bytes(base64.b64decode(encoded))
        try:
            stats = vault.rotate(source)
        except VaultError as err:
            die(str(err))
    click.echo(
        f"Vault rotated: {stats['secrets']} secret(s), "
        f"{stats['versions']} version(s) re-encrypted"
    )


def main() -> None:
    cli(prog_name="secrets-vault")


if __name__ == "__main__":
    main()
