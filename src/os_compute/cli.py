from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich import print, print_json
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from os_compute.config import load_credentials
from os_compute.errors import ComputeError
from os_compute.openstack.compute import ComputeClient

app = typer.Typer(add_completion=False, help="Command line client for the OpenStack Compute API.")


@app.callback()
def main(
    ctx: typer.Context,
    auth_url: str = typer.Option(None, help="Identity URL (OS_AUTH_URL / NOVA_URL)"),
    user: str = typer.Option(None, help="User name (OS_USERNAME / NOVA_USERNAME)"),
    password: str = typer.Option(None, help="Password (OS_PASSWORD / NOVA_PASSWORD)"),
    project_id: str = typer.Option(None, help="Project (OS_TENANT_NAME / NOVA_PROJECT_ID)"),
    region: str = typer.Option(None, help="Region (OS_REGION_NAME / NOVA_REGION_NAME)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML file with credentials"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = {
        "config": config,
        "overrides": {
            "auth_url": auth_url,
            "user": user,
            "password": password,
            "project_id": project_id,
            "region": region,
        },
    }


def _client(ctx: typer.Context) -> ComputeClient:
    opts = ctx.obj
    creds = load_credentials(opts["config"], **opts["overrides"])
    return ComputeClient.from_credentials(creds, strict=True)


def _fail(exc: ComputeError) -> None:
    print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}")
    body = getattr(exc, "body", None)
    if body:
        typer.echo(body)
    raise typer.Exit(code=1)


def _show(body: str) -> None:
    try:
        data = json.loads(body)
    except ValueError:
        typer.echo(body)
        return
    print_json(data=data)


def _read(ctx: typer.Context, method: str, *args, **kwargs) -> None:
    try:
        body = getattr(_client(ctx), method)(*args, **kwargs)
    except ComputeError as exc:
        _fail(exc)
    else:
        _show(body)


def _delete(ctx: typer.Context, method: str, kind: str, id: str) -> None:
    try:
        ok = getattr(_client(ctx), method)(id)
    except ComputeError as exc:
        _fail(exc)
    else:
        if not ok:
            print(f"[red]Could not delete {kind}[/red] {id}")
            raise typer.Exit(code=1)
        print(f"[green]Deleted {kind}[/green] {id}")


def parse_meta(items: Optional[List[str]]) -> Dict[str, str]:
    meta: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {item!r}", param_hint="--meta")
        meta[key] = value
    return meta


@app.command()
def servers(ctx: typer.Context, detail: bool = typer.Option(True, "--detail/--no-detail")):
    """List servers."""
    _read(ctx, "get_servers", detail=detail)


@app.command()
def server(ctx: typer.Context, id: str):
    """Show one server."""
    _read(ctx, "get_server", id)


@app.command("create-server")
def create_server(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Server name"),
    flavor: str = typer.Option(..., help="Flavor id"),
    image: str = typer.Option(..., help="Image id"),
):
    """Boot a new server."""
    _read(ctx, "create_server", name=name, flavor=flavor, image=image)


@app.command("delete-server")
def delete_server(ctx: typer.Context, id: str):
    """Delete a server."""
    _delete(ctx, "delete_server", "server", id)


@app.command()
def images(ctx: typer.Context, detail: bool = typer.Option(True, "--detail/--no-detail")):
    """List images."""
    _read(ctx, "get_images", detail=detail)


@app.command()
def image(ctx: typer.Context, id: str):
    """Show one image."""
    _read(ctx, "get_image", id)


@app.command("create-image")
def create_image(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Image name"),
    server: str = typer.Option(..., help="Id of the server to snapshot"),
    meta: Optional[List[str]] = typer.Option(None, "--meta", "-m", help="Image metadata as key=value, repeatable"),
):
    """
    Snapshot a server into a new image.
    """
    _read(ctx, "create_image", name=name, server=server, meta=parse_meta(meta))


@app.command("delete-image")
def delete_image(ctx: typer.Context, id: str):
    """Delete an image."""
    _delete(ctx, "delete_image", "image", id)


if __name__ == "__main__":
    app()
