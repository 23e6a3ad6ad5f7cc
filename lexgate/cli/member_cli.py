# lexgate/cli/member_cli.py
import typer
from typing import Annotated

from .utils_cli import make_api_request

app = typer.Typer(
    name="member",
    help="Manage principal memberships in tenants via Admin API.",
    no_args_is_help=True
)

ROLE_CHOICES = ("owner", "admin", "member")


@app.command("add")
def add_member(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant.")],
    principal_id: Annotated[str, typer.Argument(help="The principal to grant access to.")],
    role: Annotated[
        str,
        typer.Option("--role", help="Role inside the tenant: owner, admin or member.")
    ] = "member"
):
    """Grant a principal a role in a tenant, or change their existing role."""
    if role not in ROLE_CHOICES:
        typer.secho(f"Error: Invalid role '{role}'. Choose one of: {', '.join(ROLE_CHOICES)}.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    make_api_request(
        "PUT",
        f"/admin/tenants/{tenant_id}/members/{principal_id}",
        json_payload={"role": role}
    )


@app.command("list")
def list_members(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant.")]
):
    """List every principal with a membership in the tenant."""
    make_api_request("GET", f"/admin/tenants/{tenant_id}/members")


@app.command("remove")
def remove_member(
    tenant_id: Annotated[str, typer.Argument(help="The ID of the tenant.")],
    principal_id: Annotated[str, typer.Argument(help="The principal to remove.")]
):
    """Remove a principal's membership in a tenant."""
    make_api_request(
        "DELETE",
        f"/admin/tenants/{tenant_id}/members/{principal_id}",
        expected_status=204,
        expect_json_response=False
    )


if __name__ == "__main__":
    app()
