"""Converge CLI.

Usage:
    converge types                     # List registered resource types
    converge apply [--dry-run]         # Converge every spec in SPECS_DIR
    converge find TYPE ID              # Print the raw remote state
    converge import TYPE ID            # Print a resource spec for an existing resource
    converge delete TYPE ID            # Delete and wait until gone
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Any

import click
import yaml

from . import __version__
from .clients.base import RemoteClient
from .config import Config, ConfigurationError
from .descriptors import ResourceRegistry
from .errors import FindError, ReconcileError, ResourceNotFoundError
from .main import build_client, run, setup_logging
from .reconciler import Reconciler
from .resources import default_registry
from .spec_loader import SpecLoadError, load_specs


def _config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


def _registry(ctx: click.Context) -> ResourceRegistry:
    return ctx.obj["registry"]


def _client(ctx: click.Context) -> RemoteClient:
    client = ctx.obj.get("client")
    if client is None:
        client = build_client(_config(ctx), _registry(ctx))
        ctx.obj["client"] = client
    return client


def _reconciler(ctx: click.Context) -> Reconciler:
    return Reconciler(_client(ctx), _registry(ctx), _config(ctx))


def _check_type(ctx: click.Context, type_name: str) -> str:
    registry = _registry(ctx)
    if type_name not in registry:
        raise click.BadParameter(
            f"unknown resource type '{type_name}'. "
            f"Valid types: {', '.join(registry.type_names)}",
            param_hint="TYPE",
        )
    return type_name


def _dump(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="converge")
@click.option(
    "--specs-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory with YAML resource specs (overrides SPECS_DIR).",
)
@click.pass_context
def cli(ctx: click.Context, specs_dir: Path | None) -> None:
    """Converge declared cloud resources to their desired state.

    \b
    Quick Start:
        converge types              # What can be managed
        converge apply --dry-run    # Show planned actions
        converge apply              # Create, update or replace drifted resources
    """
    ctx.ensure_object(dict)

    config = ctx.obj.get("config")
    if config is None:
        try:
            config = Config.from_env()
        except ConfigurationError as e:
            raise click.ClickException(str(e)) from e
    if specs_dir is not None:
        config = dataclasses.replace(config, specs_dir=specs_dir)

    ctx.obj["config"] = config
    ctx.obj.setdefault("registry", default_registry())


@cli.command()
@click.pass_context
def types(ctx: click.Context) -> None:
    """List registered resource types."""
    for type_name in _registry(ctx).type_names:
        click.echo(type_name)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Report planned actions without changing anything.")
@click.pass_context
def apply(ctx: click.Context, dry_run: bool) -> None:
    """Converge every resource declared in the specs directory."""
    config = _config(ctx)
    if dry_run:
        config = dataclasses.replace(config, dry_run=True)

    try:
        specs = load_specs(config.specs_dir, _registry(ctx))
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    if not specs:
        click.echo(f"No resource specs found in {config.specs_dir}")
        return

    results = asyncio.run(run(config, specs, _registry(ctx), _client(ctx)))

    failed = 0
    for result in results:
        label = f"{result.name} ({result.type_name})"
        action = result.action.value
        if result.planned:
            action = f"would be {action}"
        if result.error is not None:
            failed += 1
            click.secho(f"✗ {label}: {result.error}", fg="red", err=True)
            continue
        suffix = f" [{result.identifier}]" if result.identifier else ""
        drift = f" drift: {', '.join(sorted(result.drift))}" if result.drift else ""
        click.echo(f"✓ {label}: {action}{suffix}{drift}")

    if failed:
        raise click.ClickException(f"{failed} of {len(results)} resources failed")


@cli.command()
@click.argument("type_name", metavar="TYPE")
@click.argument("identifier", metavar="ID")
@click.pass_context
def find(ctx: click.Context, type_name: str, identifier: str) -> None:
    """Print the raw remote state of a resource."""
    _check_type(ctx, type_name)
    try:
        state = asyncio.run(_reconciler(ctx).find(type_name, identifier))
    except ResourceNotFoundError as e:
        raise click.ClickException(f"{type_name} {identifier} not found") from e
    except FindError as e:
        raise click.ClickException(str(e)) from e
    click.echo(_dump(state))


@cli.command("import")
@click.argument("type_name", metavar="TYPE")
@click.argument("identifier", metavar="ID")
@click.option("--name", default=None, help="Resource name in the generated spec.")
@click.pass_context
def import_(ctx: click.Context, type_name: str, identifier: str, name: str | None) -> None:
    """Print a resource spec document for an existing resource."""
    _check_type(ctx, type_name)
    try:
        attributes = asyncio.run(_reconciler(ctx).read(type_name, identifier))
    except FindError as e:
        raise click.ClickException(str(e)) from e
    if attributes is None:
        raise click.ClickException(f"{type_name} {identifier} not found")

    computed = _registry(ctx).get(type_name).field_map.computed
    document = {
        "name": name or identifier.rsplit("/", 1)[-1],
        "type": type_name,
        "identifier": identifier,
        "properties": {k: v for k, v in attributes.items() if k not in computed},
    }
    click.echo(_dump(document))


@cli.command()
@click.argument("type_name", metavar="TYPE")
@click.argument("identifier", metavar="ID")
@click.confirmation_option(prompt="Delete the resource?")
@click.pass_context
def delete(ctx: click.Context, type_name: str, identifier: str) -> None:
    """Delete a resource and wait until it is gone."""
    _check_type(ctx, type_name)
    try:
        asyncio.run(_reconciler(ctx).delete(type_name, identifier))
    except ReconcileError as e:
        raise click.ClickException(str(e)) from e
    click.secho(f"✓ {type_name} {identifier} deleted", fg="green")


def main() -> None:
    """Console entry point: human-readable logs on stderr."""
    setup_logging(json_output=False, level=logging.WARNING)
    cli()


if __name__ == "__main__":
    main()
