# lexgate/cli/tenant_cli.py
import typer
from typing import Annotated, Optional

from .utils_cli import make_api_request

app = typer.Typer(
    name="tenant",
    help="Manage Lexgate tenants (law firms) via Admin API.",
    no_args_is_help=True
)


@app.command("create")
def create_tenant(
    tenant_id: Annotated[
        str,
        typer.Option(
            prompt="Tenant ID (e.g., smith-legal)",
            help="Unique, immutable slug for the tenant."
        )
    ],
    name: Annotated[
        str,
        typer.Option(prompt="Firm name", help="Display name for the tenant.")
    ],
    owner: Annotated[
        Optional[str],
        typer.Option("--owner", help="Principal ID to register as the tenant owner.")
    ] = None
):
    """Register a new tenant. It starts in provisioning and is not routable until activated."""
    payload = {"tenant_id": tenant_id, "display_name": name}
    if owner:
        payload["owner_principal_id"] = owner
    make_api_request("POST", "/admin/tenants/", json_payload=payload, expected_status=201)


@app.command("get")
def get_tenant(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant to retrieve.")]
):
    """Get details for a specific tenant."""
    make_api_request("GET", f"/admin/tenants/{tenant_id}")


@app.command("list")
def list_tenants(
    skip: Annotated[
        int,
        typer.Option("--skip", help="Number of tenants to skip.", min=0)
    ] = 0,
    limit: Annotated[
        int,
        typer.Option("--limit", help="Maximum number of tenants to return.", min=1, max=100)
    ] = 100,
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="Only tenants in this status (provisioning, active, suspended).")
    ] = None
):
    """List tenants."""
    params = {"skip": skip, "limit": limit}
    if status:
        params["status"] = status
    make_api_request("GET", "/admin/tenants/", params_payload=params)


@app.command("activate")
def activate_tenant(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant to activate.")],
    backend_location: Annotated[
        str,
        typer.Option(
            "--backend-location",
            prompt="Backend base URL",
            help="Base URL of the tenant's isolated backend."
        )
    ]
):
    """Record the backend location of a provisioned tenant and make it routable."""
    make_api_request(
        "POST",
        f"/admin/tenants/{tenant_id}/activate",
        json_payload={"backend_location": backend_location}
    )


@app.command("suspend")
def suspend_tenant(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant to suspend.")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Suspend without confirmation.")
    ] = False
):
    """Suspend a tenant. Its cached connections are dropped at once."""
    if not force:
        typer.confirm(f"Suspend tenant '{tenant_id}'? Its users lose access immediately.", abort=True)
    make_api_request("POST", f"/admin/tenants/{tenant_id}/suspend")


@app.command("invalidate")
def invalidate_tenant_connections(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant whose cached connections to drop.")]
):
    """Drop cached backend connections for a tenant in every gateway process."""
    make_api_request("POST", f"/admin/tenants/{tenant_id}/invalidate")


if __name__ == "__main__":
    app()
