"""CLI entry point — click-based commands."""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import sys

import click

from gcloud_ctx import __version__
from gcloud_ctx.constants import CONFIG_ENV_VAR, DEFAULT_HISTORY_TAIL, HISTORY_FILE, default_location
from gcloud_ctx.errors import EXIT_DOCTOR_FAILURE, EXIT_OK, GctxError
from gcloud_ctx.history import HistoryLog
from gcloud_ctx.properties import PropertiesBuilder
from gcloud_ctx.store import ConfigurationStore, ConflictAction


class _Group(click.Group):
    """Render store errors as a message plus the error's exit code."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except GctxError as exc:
            click.echo(f"{click.style('Error:', fg='red')} {exc}", err=True)
            ctx.exit(exc.exit_code)


def _location(ctx: click.Context) -> pathlib.Path:
    return ctx.obj["location"]


def _open_store(ctx: click.Context) -> ConfigurationStore:
    location = _location(ctx)
    return ConfigurationStore.open(location, history=HistoryLog(location / HISTORY_FILE))


def _conflict(force: bool) -> ConflictAction:
    return ConflictAction.OVERWRITE if force else ConflictAction.FAIL


def _name(value: str) -> str:
    return click.style(value, fg="blue")


def _old_name(value: str) -> str:
    return click.style(value, fg="yellow")


@click.group(cls=_Group)
@click.version_option(__version__, prog_name="gctx")
@click.option(
    "--location",
    type=click.Path(file_okay=False, path_type=pathlib.Path),
    envvar=CONFIG_ENV_VAR,
    default=None,
    help=f"gcloud configuration directory (defaults to ${CONFIG_ENV_VAR} or ~/.config/gcloud).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log store operations to stderr.")
@click.pass_context
def main(ctx, location, verbose):
    """Manage and switch between gcloud configurations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["location"] = pathlib.Path(location) if location else default_location()


# ── read commands ─────────────────────────────────────────────────

@main.command("list")
@click.pass_context
def list_(ctx):
    """List configurations; the active one is marked with '*'."""
    store = _open_store(ctx)
    for config in store.configurations():
        if store.is_active(config):
            click.echo(f"{_name('*')} {_name(config.name)}")
        else:
            click.echo(f"  {config.name}")


@main.command()
@click.pass_context
def current(ctx):
    """Show the active configuration."""
    store = _open_store(ctx)
    click.echo(_name(store.current()))


@main.command()
@click.argument("name", required=False)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["ini", "json"]),
    default="ini",
    show_default=True,
    help="Output format.",
)
@click.pass_context
def describe(ctx, name, output_format):
    """Show the properties of NAME (default: the active configuration)."""
    store = _open_store(ctx)
    properties = store.describe(name)
    if output_format == "json":
        click.echo(json.dumps(properties.model_dump(exclude_none=True), indent=2))
    else:
        click.echo(properties.to_text(), nl=False)


# ── mutating commands ─────────────────────────────────────────────

@main.command()
@click.argument("name")
@click.pass_context
def activate(ctx, name):
    """Activate configuration NAME."""
    store = _open_store(ctx)
    store.activate(name)
    click.echo(f"Successfully activated '{_name(name)}'")


@main.command()
@click.argument("name")
@click.option("--project", required=True, help="core/project setting")
@click.option("--account", required=True, help="core/account setting")
@click.option("--zone", required=True, help="compute/zone setting")
@click.option("--region", default=None, help="compute/region setting")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration with the same name.")
@click.option("--activate", "activate_after", is_flag=True, help="Activate the new configuration.")
@click.pass_context
def create(ctx, name, project, account, zone, region, force, activate_after):
    """Create configuration NAME."""
    store = _open_store(ctx)

    builder = PropertiesBuilder().project(project).account(account).zone(zone)
    if region:
        builder.region(region)

    store.create(name, builder.build(), _conflict(force))
    click.echo(f"Successfully created configuration '{_name(name)}'")

    if activate_after:
        store.activate(name)
        click.echo(f"Configuration '{_name(name)}' is now active")


@main.command()
@click.argument("src_name")
@click.argument("dest_name")
@click.option("--force", is_flag=True, help="Overwrite DEST_NAME if it exists.")
@click.option("--activate", "activate_after", is_flag=True, help="Activate the copy.")
@click.pass_context
def copy(ctx, src_name, dest_name, force, activate_after):
    """Copy configuration SRC_NAME to DEST_NAME."""
    store = _open_store(ctx)
    store.copy(src_name, dest_name, _conflict(force))
    click.echo(
        f"Successfully copied configuration '{_old_name(src_name)}' to '{_name(dest_name)}'"
    )

    if activate_after:
        store.activate(dest_name)
        click.echo(f"Configuration '{_name(dest_name)}' is now active")


@main.command()
@click.argument("old_name")
@click.argument("new_name")
@click.option("--force", is_flag=True, help="Overwrite NEW_NAME if it exists.")
@click.pass_context
def rename(ctx, old_name, new_name, force):
    """Rename configuration OLD_NAME to NEW_NAME."""
    store = _open_store(ctx)
    store.rename(old_name, new_name, _conflict(force))
    click.echo(
        f"Successfully renamed configuration '{_old_name(old_name)}' to '{_name(new_name)}'"
    )

    configuration = store.find_by_name(new_name)
    if configuration is not None and store.is_active(configuration):
        click.echo(f"Configuration '{_name(new_name)}' is now active")


@main.command()
@click.argument("name")
@click.pass_context
def delete(ctx, name):
    """Delete configuration NAME."""
    store = _open_store(ctx)
    store.delete(name)
    click.echo(f"Successfully deleted configuration '{_old_name(name)}'")


# ── maintenance ───────────────────────────────────────────────────

@main.command()
@click.option("-n", "count", default=DEFAULT_HISTORY_TAIL, show_default=True, help="Entries to show.")
@click.pass_context
def history(ctx, count):
    """Show the most recent configuration changes."""
    log = HistoryLog(_location(ctx) / HISTORY_FILE)
    for entry in log.read_last_n(count):
        when = datetime.datetime.fromtimestamp(entry.get("timestamp", 0)).strftime("%Y-%m-%d %H:%M:%S")
        args = " ".join(f"{k}={v}" for k, v in (entry.get("args") or {}).items())
        click.echo(f"{when}  {entry.get('action', '?'):<8} {args}")


@main.command()
@click.pass_context
def doctor(ctx):
    """Check the configuration store for problems.

    Exits with code 0 when all checks pass, or 10 when one or more fail.
    """
    from gcloud_ctx.doctor import run_doctor

    report = run_doctor(_location(ctx))
    _print_report(report)

    if report.passed:
        click.echo("\n✅  All checks passed — store is healthy.")
        ctx.exit(EXIT_OK)
    else:
        click.echo(
            f"\n❌  {len(report.failures)} check(s) failed. Fix the issues above and re-run "
            "`gctx doctor`.",
            err=True,
        )
        ctx.exit(EXIT_DOCTOR_FAILURE)


def _print_report(report) -> None:
    """Pretty-print the doctor report to stdout."""
    click.echo(f"gctx doctor — store check\n{'─' * 45}")
    for check in report.checks:
        icon = "✓" if check.passed else "✗"
        click.echo(f"  [{icon}] {check.name}: {check.message}")
        if check.hint:
            click.echo(f"       ↳ {check.hint}")
