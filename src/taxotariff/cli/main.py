"""Command-line interface for taxotariff."""

from __future__ import annotations

import json
from pathlib import Path

import click

from ..bootstrap import ResolverServices, build_services
from ..config import Settings
from ..errors import ResolverError
from ..observability import configure_logging
from ..storage import get_store
from ..tariff import TariffResolver, load_tariff_schedule
from ..taxonomy import derive_overview


def _services(ctx: click.Context) -> ResolverServices:
    services = ctx.obj.get("services")
    if services is None:
        services = build_services(ctx.obj["settings"])
        ctx.obj["services"] = services
        ctx.call_on_close(services.close)
    return services


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2))


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """taxotariff command suite."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", settings)


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("taxotariff.api.app:app", host=host, port=port)


@cli.command("resolve")
@click.argument("query")
@click.pass_context
def resolve(ctx: click.Context, query: str) -> None:
    """Print the best category path for QUERY."""
    services = _services(ctx)
    try:
        path = services.categories.resolve_with_meta(query)
    except ResolverError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(
        {
            "categories": [c.model_dump(exclude_none=True) for c in path],
            "overview": derive_overview(path).model_dump(),
        }
    )


@cli.command("suggest")
@click.argument("query")
@click.pass_context
def suggest(ctx: click.Context, query: str) -> None:
    """Print every candidate path for QUERY with its entity tag."""
    services = _services(ctx)
    try:
        result = services.suggestions.resolve_conditional(query)
    except ResolverError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(
        {
            "etag": result.etag,
            "suggestions": [s.model_dump(exclude_none=True) for s in result.suggestions],
        }
    )


@cli.group()
def meta() -> None:
    """Per-category operator metadata."""


@meta.command("get")
@click.argument("category_id")
@click.pass_context
def meta_get(ctx: click.Context, category_id: str) -> None:
    _echo_json(_services(ctx).metadata.get(category_id) or {})


@meta.command("set")
@click.argument("category_id")
@click.argument("fields", nargs=-1, required=True)
@click.pass_context
def meta_set(ctx: click.Context, category_id: str, fields: tuple) -> None:
    """Merge FIELDS (key=value pairs) into the metadata of CATEGORY_ID."""
    partial = {}
    for field in fields:
        name, sep, value = field.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected key=value, got {field!r}", param_hint="FIELDS")
        partial[name] = value
    _echo_json(_services(ctx).metadata.merge(category_id, partial))


@meta.command("delete")
@click.argument("category_id")
@click.pass_context
def meta_delete(ctx: click.Context, category_id: str) -> None:
    _services(ctx).metadata.delete(category_id)
    click.echo(f"Deleted metadata for {category_id}")


@cli.group()
def tariff() -> None:
    """Tariff reference data."""


@tariff.command("load")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def tariff_load(ctx: click.Context, path: Path) -> None:
    """Load a USITC-style JSON/JSONL export into the tariff store."""
    store = get_store(ctx.obj["settings"].tariff_url)
    try:
        count = load_tariff_schedule(path, store)
    finally:
        store.close()
    click.echo(f"Loaded {count} tariff codes")


@tariff.command("lookup")
@click.argument("hs_code")
@click.pass_context
def tariff_lookup(ctx: click.Context, hs_code: str) -> None:
    settings = ctx.obj["settings"]
    try:
        store = get_store(settings.tariff_url, read_only=True)
        try:
            match = TariffResolver(store, max_attempts=settings.tariff_attempts).lookup(hs_code)
        finally:
            store.close()
    except ResolverError as exc:
        raise click.ClickException(str(exc)) from exc
    if match is None:
        raise click.ClickException(f"No tariff record for {hs_code}")
    _echo_json({"matched": match.matched, "attempts": match.attempts, "record": json.loads(match.record)})


@cli.group()
def token() -> None:
    """Upstream OAuth token cache."""


@token.command("refresh")
@click.pass_context
def token_refresh(ctx: click.Context) -> None:
    """Force a new token into the cache."""
    try:
        fresh = _services(ctx).credentials.refresh()
    except ResolverError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Token cached until {fresh.expires_at:.0f}")


if __name__ == "__main__":  # pragma: no cover
    cli()
