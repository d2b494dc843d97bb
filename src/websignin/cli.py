"""Web sign-in provider CLI (websignin).

Runs single lifecycle verbs against the directory outside the engine, for
operators debugging a stack or preparing an application by hand.

Usage:
    websignin create --object-id <id> --host-name app.example.com
    websignin update old.yaml new.yaml
    websignin delete --object-id <id>
    websignin diff old.yaml new.yaml
    websignin wait --object-id <id> --absent
    websignin request request.json
    websignin info
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, TypeVar

import click

from .config import (
    DEFAULT_PROVIDER_VERSION,
    RESOURCE_TYPE_WEB_SIGN_IN,
    ConfigurationError,
    ProviderConfig,
)
from .errors import ProviderError
from .graph_client import GraphCliClient
from .main import handle_request, setup_logging
from .poller import ExistencePoller
from .provider import WebSignInProvider
from .spec_loader import SpecLoadError, load_descriptor, load_request

T = TypeVar("T")

CLI_STACK = "cli"
CLI_PROJECT = "websignin"


def default_urn(name: str) -> str:
    """URN for a resource managed from the command line."""
    return f"urn:pulumi:{CLI_STACK}::{CLI_PROJECT}::{RESOURCE_TYPE_WEB_SIGN_IN}::{name}"


def collect_properties(
    object_id: str | None, host_name: str | None, file: str | None
) -> dict[str, Any]:
    """Merge a descriptor file with explicit options; options win."""
    properties: dict[str, Any] = {}
    if file:
        properties.update(load_descriptor(Path(file)))
    if object_id is not None:
        properties["objectId"] = object_id
    if host_name is not None:
        properties["hostName"] = host_name
    return properties


def _call(fn: Callable[[], T]) -> T:
    """Run a provider call, turning provider errors into CLI errors."""
    try:
        return fn()
    except (ProviderError, SpecLoadError) as e:
        raise click.ClickException(str(e)) from e


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _provider(ctx: click.Context) -> WebSignInProvider:
    return ctx.obj["provider"]


def descriptor_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Shared --object-id/--host-name/--file options."""
    fn = click.option(
        "--file", "-f", type=click.Path(exists=True, dir_okay=False), help="YAML/JSON descriptor"
    )(fn)
    fn = click.option("--host-name", "-n", help="Host name serving the web app")(fn)
    fn = click.option("--object-id", "-o", help="Application object ID")(fn)
    return fn


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log az command lines and output")
@click.version_option(version=DEFAULT_PROVIDER_VERSION, prog_name="websignin")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Prepare Azure AD applications for web sign-in.

    \b
    Configuration comes from the environment (GRAPH_API_HOST, AZ_CLI_PATH,
    EXISTENCE_POLL_ATTEMPTS, EXISTENCE_POLL_INTERVAL, AZ_COMMAND_TIMEOUT).
    """
    try:
        config = ProviderConfig.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if verbose:
        config = replace(config, log_level="DEBUG", log_format="text")
    setup_logging(config)

    # Callers may pre-seed obj (tests inject an in-memory directory)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("config", config)
    if "poller" not in ctx.obj:
        api = GraphCliClient(config)
        ctx.obj["poller"] = ExistencePoller.from_config(api, config)
        ctx.obj["provider"] = WebSignInProvider(
            name=CLI_PROJECT, version=config.provider_version, api=api, poller=ctx.obj["poller"]
        )


# =============================================================================
# Lifecycle Commands
# =============================================================================


@cli.command()
@descriptor_options
@click.pass_context
def check(
    ctx: click.Context, object_id: str | None, host_name: str | None, file: str | None
) -> None:
    """Validate a descriptor without calling the directory."""
    properties = _call(lambda: collect_properties(object_id, host_name, file))
    name = str(properties.get("objectId") or "unnamed")
    response = _call(lambda: _provider(ctx).check(default_urn(name), properties))

    if response.failures:
        for failure in response.failures:
            click.secho(f"✗ {failure.property}: {failure.reason}", fg="red", err=True)
        raise click.ClickException("Descriptor is invalid")
    click.secho("✓ Descriptor is valid", fg="green")


@cli.command()
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def diff(ctx: click.Context, old_file: str, new_file: str) -> None:
    """Show which fields change between two descriptors."""
    olds = _call(lambda: load_descriptor(Path(old_file)))
    news = _call(lambda: load_descriptor(Path(new_file)))
    name = str(news.get("objectId") or "unnamed")
    response = _call(lambda: _provider(ctx).diff(default_urn(name), olds, news))
    _echo_json(asdict(response))


@cli.command()
@descriptor_options
@click.pass_context
def create(
    ctx: click.Context, object_id: str | None, host_name: str | None, file: str | None
) -> None:
    """Wait for the application to exist, then configure web sign-in."""
    properties = _call(lambda: collect_properties(object_id, host_name, file))
    name = str(properties.get("objectId") or "unnamed")
    response = _call(lambda: _provider(ctx).create(default_urn(name), properties))
    _echo_json(asdict(response))


@cli.command()
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def update(ctx: click.Context, old_file: str, new_file: str) -> None:
    """Converge an application from one descriptor to another."""
    olds = _call(lambda: load_descriptor(Path(old_file)))
    news = _call(lambda: load_descriptor(Path(new_file)))
    name = str(news.get("objectId") or "unnamed")
    response = _call(lambda: _provider(ctx).update(default_urn(name), olds, news))
    _echo_json(asdict(response))


@cli.command()
@descriptor_options
@click.pass_context
def delete(
    ctx: click.Context, object_id: str | None, host_name: str | None, file: str | None
) -> None:
    """Delete the application and wait until the directory stops returning it."""
    properties = _call(lambda: collect_properties(object_id, host_name, file))
    name = str(properties.get("objectId") or "unnamed")
    _call(lambda: _provider(ctx).delete(default_urn(name), properties))
    click.secho(f"✓ Deleted {name}", fg="green")


@cli.command()
@click.option("--object-id", "-o", required=True, help="Application object ID")
@click.option("--absent", is_flag=True, help="Wait for the application to disappear")
@click.pass_context
def wait(ctx: click.Context, object_id: str, absent: bool) -> None:
    """Block until the application exists (or no longer exists)."""
    poller: ExistencePoller = ctx.obj["poller"]
    _call(lambda: poller.wait_for_existence(object_id, not absent))
    state = "absent" if absent else "present"
    click.secho(f"✓ {object_id} is {state}", fg="green")


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def request(ctx: click.Context, request_file: str) -> None:
    """Run a raw provider request from a JSON/YAML file."""
    data = _call(lambda: load_request(Path(request_file)))
    response = _call(lambda: handle_request(_provider(ctx), data))
    _echo_json(response)


# =============================================================================
# Info Command
# =============================================================================


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show provider configuration and tool availability."""
    config: ProviderConfig = ctx.obj["config"]
    provider = _provider(ctx)

    click.echo("Web sign-in provider (websignin)")
    click.echo("=" * 40)
    click.echo(f"Version:        {provider.get_plugin_info().version}")
    click.echo(f"Resource type:  {RESOURCE_TYPE_WEB_SIGN_IN}")
    click.echo(f"Graph endpoint: {config.applications_base_url}")
    click.echo(f"Poll schedule:  {config.poll_attempts} x {config.poll_interval_seconds}s")

    az_path = shutil.which(config.az_cli_path)
    click.echo(f"Azure CLI:      {az_path or 'not found'}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
