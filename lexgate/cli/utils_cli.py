# lexgate/cli/utils_cli.py
import requests
import typer
import json
from typing import Optional, Dict, Any, Union, List

from . import config


def _describe_error(response: requests.Response) -> str:
    try:
        err_data = response.json()
    except json.JSONDecodeError:
        return f" Raw response: {response.text}"
    detail = err_data.get("detail", response.text) if isinstance(err_data, dict) else err_data
    # Routing errors carry a structured detail
    if isinstance(detail, dict) and "error" in detail:
        described = f" Error: {detail['error']}"
        if detail.get("error_description"):
            described += f" ({detail['error_description']})"
        if detail.get("reason"):
            described += f" Reason: {detail['reason']}"
        return described
    return f" Detail: {detail}"


def make_api_request(
    method: str,
    endpoint: str,
    json_payload: Optional[Dict[str, Any]] = None,
    params_payload: Optional[Dict[str, Any]] = None,
    expected_status: Union[int, List[int]] = 200,
    expect_json_response: bool = True
) -> Any:
    """
    Makes an HTTP request against the Lexgate API and echoes what happened.

    Sends the admin API key when one is configured. Any unexpected status or
    connection problem ends the command with exit code 1.
    """
    full_url = f"{config.LEXGATE_CLI_API_BASE_URL}{endpoint}"
    headers: Dict[str, str] = {}

    if config.LEXGATE_CLI_ADMIN_API_KEY:
        headers["X-Admin-API-Key"] = config.LEXGATE_CLI_ADMIN_API_KEY
    elif "/admin/" in endpoint:
        typer.secho(
            "CLI: Warning - ADMIN_API_KEY not set in .env for CLI. Admin API calls might fail.",
            fg=typer.colors.YELLOW
        )

    typer.echo(f"CLI: {method.upper()} {full_url}")
    if json_payload:
        typer.echo(f"CLI: JSON Payload: {json.dumps(json_payload, indent=2)}")
    if params_payload:
        typer.echo(f"CLI: Query Params: {params_payload}")

    try:
        response = requests.request(
            method,
            full_url,
            json=json_payload,
            params=params_payload,
            headers=headers,
            timeout=30
        )
    except requests.exceptions.ConnectionError as e:
        typer.secho(
            f"CLI: Connection Error - Could not connect to API at {full_url}. Is the server running? Error: {e}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    except requests.exceptions.RequestException as e:
        typer.secho(f"CLI: Request Error - {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"CLI: Response Status: {response.status_code}")
    expected_statuses = [expected_status] if isinstance(expected_status, int) else expected_status

    if response.status_code not in expected_statuses:
        typer.secho(
            f"CLI: API Error - Expected status {expected_status}, got {response.status_code}."
            + _describe_error(response),
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)

    if response.status_code == 204 or not response.content:
        typer.secho(f"CLI: Success (Status {response.status_code}, No Content).", fg=typer.colors.GREEN)
        return None

    if not expect_json_response:
        typer.secho(
            f"CLI: Success (Status {response.status_code}). Raw text: {response.text[:200]}...",
            fg=typer.colors.GREEN
        )
        return response.text

    try:
        data = response.json()
    except json.JSONDecodeError:
        typer.secho(
            f"CLI: Error - Could not decode JSON response. Raw text: {response.text}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    typer.echo(typer.style("CLI: Response JSON:", fg=typer.colors.CYAN))
    typer.echo(json.dumps(data, indent=2))
    return data
