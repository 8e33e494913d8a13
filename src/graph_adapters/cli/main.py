"""
Primary Typer application for inspecting the adapter engine.

The CLI surfaces the adapter metadata catalogue plus the identifier, scope and
configuration helpers so operators can check how a query will be routed before
wiring adapters into a graph consumer.
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Optional

import typer

from ..config import ConfigError, load_settings
from ..core import (
    AdapterCategory,
    AdapterMetadata,
    AdapterRegistry,
    IdentifierParseError,
    RegistryLoadError,
    configure_logging,
    format_scope,
    parse_identifier,
)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Inspect graph adapter metadata and helpers.\n\n"
        "Command groups:\n"
        "- adapters: list and describe registered item types.\n"
        "- identifiers: parse resource identifiers.\n"
        "- scopes: build scope strings.\n"
        "- config: show effective engine settings."
    ),
)
adapters_app = typer.Typer(help="List and describe the item types in the adapter registry.")
app.add_typer(adapters_app, name="adapters")
identifiers_app = typer.Typer(help="Parse resource identifiers of the form scheme:partition:service:region:account:resource.")
app.add_typer(identifiers_app, name="identifiers")
scopes_app = typer.Typer(help="Build scope strings used to address adapters.")
app.add_typer(scopes_app, name="scopes")
config_app = typer.Typer(help="Inspect engine configuration.")
app.add_typer(config_app, name="config")

_REGISTRY_PACKAGE = "graph_adapters.resources.adapters"


def _load_registry(registry_file: Optional[Path]) -> AdapterRegistry:
    if registry_file:
        return AdapterRegistry.from_yaml(registry_file)
    with resources.as_file(resources.files(_REGISTRY_PACKAGE) / "core.yaml") as resolved:
        return AdapterRegistry.from_yaml(resolved)


def _parse_category(value: Optional[str]) -> Optional[AdapterCategory]:
    if value is None:
        return None
    try:
        return AdapterCategory(value.lower())
    except ValueError as exc:
        choices = ", ".join(category.value for category in AdapterCategory)
        raise typer.BadParameter(f"Unknown category '{value}'. Expected one of: {choices}.") from exc


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    registry_file: Optional[Path] = typer.Option(
        None,
        "--registry",
        "-r",
        help="Override adapter registry YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to GRAPH_ADAPTERS_LOG_LEVEL or WARNING)."),
) -> None:
    """
    Configure logging and load the adapter registry.

    The registry is stored in Typer's state so child commands can retrieve it
    via :class:`typer.Context`.
    """

    configure_logging(log_level)
    try:
        registry = _load_registry(registry_file)
    except RegistryLoadError as exc:
        typer.echo(f"Failed to load registry: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    state = ctx.ensure_object(dict)
    state["registry"] = registry


def _require_registry(ctx: typer.Context) -> AdapterRegistry:
    state = ctx.ensure_object(dict)
    registry = state.get("registry")
    if not isinstance(registry, AdapterRegistry):
        raise typer.Exit(code=2)
    return registry


@adapters_app.command("list")
def adapters_list(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by resource category."),
) -> None:
    """List registered item types with their supported methods."""

    registry = _require_registry(ctx)
    entries = registry.list(category=_parse_category(category))
    if not entries:
        typer.echo("No adapters match the requested filters.")
        raise typer.Exit(code=0)

    header = f"{'Type':<24} {'Category':<14} {'Methods':<18} Name"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        methods = ",".join(method.value for method in entry.supported_methods)
        typer.echo(f"{entry.item_type:<24} {entry.category.value:<14} {methods:<18} {entry.descriptive_name}")


def _describe_text(metadata: AdapterMetadata) -> None:
    typer.echo(f"Type: {metadata.item_type}")
    typer.echo(f"Name: {metadata.descriptive_name}")
    typer.echo(f"Category: {metadata.category.value}")
    typer.echo(f"Methods: {', '.join(method.value for method in metadata.supported_methods)}")
    if metadata.get_description:
        typer.echo(f"Get: {metadata.get_description}")
    if metadata.list_description:
        typer.echo(f"List: {metadata.list_description}")
    if metadata.search_description:
        typer.echo(f"Search: {metadata.search_description}")
    if metadata.potential_links:
        typer.echo(f"Potential Links: {', '.join(metadata.potential_links)}")
    if metadata.tags:
        typer.echo(f"Tags: {', '.join(metadata.tags)}")


@adapters_app.command("describe")
def adapters_describe(
    ctx: typer.Context,
    item_type: str = typer.Argument(..., help="Item type, e.g. ecs-cluster."),
    output_json: bool = typer.Option(False, "--json", help="Emit metadata in JSON format."),
) -> None:
    """Show detailed metadata for one item type."""

    registry = _require_registry(ctx)
    metadata = registry.get(item_type)
    if not metadata:
        typer.echo(f"Item type '{item_type}' is not registered.", err=True)
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(metadata.to_json())
        return
    _describe_text(metadata)


@identifiers_app.command("parse")
def identifiers_parse(
    value: str = typer.Argument(..., help="Identifier to parse."),
    output_json: bool = typer.Option(False, "--json", help="Emit the parsed identifier as JSON."),
) -> None:
    """Split an identifier into its sections and derive its scope."""

    try:
        identifier = parse_identifier(value)
    except IdentifierParseError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    payload = {
        "scheme": identifier.scheme,
        "partition": identifier.partition,
        "service": identifier.service,
        "region": identifier.region,
        "account_id": identifier.account_id,
        "resource": identifier.resource,
        "resource_type": identifier.resource_type,
        "resource_id": identifier.resource_id,
        "scope": identifier.scope,
    }
    if output_json:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    for key, field_value in payload.items():
        typer.echo(f"{key}: {field_value}")


@scopes_app.command("format")
def scopes_format(
    account_id: str = typer.Argument(..., help="Provider account ID."),
    region: str = typer.Argument("", help="Provider region. Omit for account-wide scopes."),
) -> None:
    """Print the scope string an adapter for ``account_id`` and ``region`` answers for."""

    typer.echo(format_scope(account_id, region))


@config_app.command("show")
def config_show(
    strict: bool = typer.Option(False, "--strict", help="Fail when no settings file is found."),
) -> None:
    """Print the effective engine settings as JSON."""

    try:
        settings = load_settings(strict=strict)
    except (FileNotFoundError, ConfigError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(settings.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
