import logging
from collections.abc import Callable
from functools import wraps

import typer

from bitly_cli.config import AppConfig
from bitly_cli.errors import RequestError
from bitly_cli.models.bitlink import Bitlink, BitlinkList
from bitly_cli.services.bitly_client import BitlyClient

app = typer.Typer(help="Bitly command line client", no_args_is_help=True)
auth_app = typer.Typer(help="Authentication commands")
link_app = typer.Typer(help="Bitlink commands")

app.add_typer(auth_app, name="auth")
app.add_typer(link_app, name="link")


def get_client(config: AppConfig) -> BitlyClient:
    return BitlyClient.from_config(config)


def handle_request_errors(func: Callable) -> Callable:
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RequestError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    return wrapper


def _echo_bitlink(bitlink: Bitlink) -> None:
    typer.echo(bitlink.model_dump_json(indent=2, exclude_none=True))


def _echo_page(page: BitlinkList) -> None:
    for bitlink in page:
        typer.echo(f"{bitlink.link}\t{bitlink.long_url}")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    api_url: str | None = typer.Option(None, help="API base URL, overrides BITLY_API_URL"),
    token: str | None = typer.Option(None, help="Access token, overrides BITLY_ACCESS_TOKEN"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    overrides = {"api_url": api_url, "access_token": token}
    ctx.obj = AppConfig(**{k: v for k, v in overrides.items() if v is not None})


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    config: AppConfig = ctx.obj
    token_state = "configured" if config.access_token else "missing (set BITLY_ACCESS_TOKEN)"
    typer.echo(f"Target Bitly API: {config.api_url} (token {token_state})")


@link_app.command("shorten")
@handle_request_errors
def link_shorten(
    ctx: typer.Context,
    long_url: str,
    group_guid: str | None = typer.Option(None, help="Group to create the link in"),
    domain: str | None = typer.Option(None, help="Branded short domain"),
) -> None:
    config: AppConfig = ctx.obj
    with get_client(config) as client:
        bitlink = Bitlink.shorten(
            client=client,
            long_url=long_url,
            group_guid=group_guid or config.default_group_guid,
            domain=domain,
        )
    _echo_bitlink(bitlink)


@link_app.command("create")
@handle_request_errors
def link_create(
    ctx: typer.Context,
    long_url: str,
    title: str | None = typer.Option(None),
    tag: list[str] | None = typer.Option(None, help="Tag to attach, repeatable"),
    group_guid: str | None = typer.Option(None),
    domain: str | None = typer.Option(None),
) -> None:
    config: AppConfig = ctx.obj
    with get_client(config) as client:
        bitlink = Bitlink.create(
            client=client,
            long_url=long_url,
            group_guid=group_guid or config.default_group_guid,
            domain=domain,
            title=title,
            tags=tag or None,
        )
    _echo_bitlink(bitlink)


@link_app.command("fetch")
@handle_request_errors
def link_fetch(ctx: typer.Context, bitlink: str) -> None:
    with get_client(ctx.obj) as client:
        _echo_bitlink(Bitlink.fetch(client=client, bitlink=bitlink))


@link_app.command("expand")
@handle_request_errors
def link_expand(ctx: typer.Context, bitlink: str) -> None:
    with get_client(ctx.obj) as client:
        _echo_bitlink(Bitlink.expand(client=client, bitlink=bitlink))


@link_app.command("list")
@handle_request_errors
def link_list(
    ctx: typer.Context,
    group_guid: str,
    all_pages: bool = typer.Option(False, "--all", help="Follow pagination to the end"),
) -> None:
    with get_client(ctx.obj) as client:
        first = Bitlink.list(client=client, group_guid=group_guid)
        pages = first.iter_pages() if all_pages else [first]
        for page in pages:
            _echo_page(page)
        if not all_pages and first.has_next_page():
            typer.echo(f"-- page {first.page}, {first.total} links in total; use --all for more", err=True)


if __name__ == "__main__":
    app()
