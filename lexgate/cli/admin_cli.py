# lexgate/cli/admin_cli.py
import typer
from . import tenant_cli
from . import member_cli
from . import routing_cli

app = typer.Typer(
    name="admin",
    help="Lexgate Administrative Commands.",
    no_args_is_help=True
)

app.add_typer(tenant_cli.app, name="tenant")
app.add_typer(member_cli.app, name="member")
app.add_typer(routing_cli.app, name="routing")


@app.callback()
def admin_callback():
    """Lexgate Admin CLI. All commands call the admin API with ADMIN_API_KEY from .env."""
    pass


if __name__ == "__main__":
    app()
