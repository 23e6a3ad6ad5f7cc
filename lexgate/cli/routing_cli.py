# lexgate/cli/routing_cli.py
import typer
from typing import Annotated, Optional

from .utils_cli import make_api_request

app = typer.Typer(
    name="routing",
    help="Inspect the tenant connection cache and recent routing decisions.",
    no_args_is_help=True
)


@app.command("cache")
def show_cache():
    """Show the tenants with a cached backend connection on the target gateway process."""
    make_api_request("GET", "/admin/routing/cache")


@app.command("events")
def show_events(
    tenant_id: Annotated[
        Optional[str],
        typer.Option("--tenant", help="Only events for this tenant.")
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", help="Maximum number of events to return.", min=1, max=1000)
    ] = 100
):
    """Show recent routing decisions, oldest first."""
    params = {"limit": limit}
    if tenant_id:
        params["tenant_id"] = tenant_id
    make_api_request("GET", "/admin/routing/events", params_payload=params)


if __name__ == "__main__":
    app()
