"""Entry point: run the fee calculator CLI or serve the HTTP API."""

from enum import Enum
from typing import Optional

import typer

from feecalc.cli import app as cli_app
from feecalc.config import get_config


class RunMode(str, Enum):
    cli = "cli"
    api = "api"


app = typer.Typer(
    help="Payment fee calculator - CLI or API mode.",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Fee and invoice commands.")


def _serve_api(host: Optional[str], port: Optional[int]) -> None:
    import uvicorn

    config = get_config()
    uvicorn.run(
        "feecalc.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=False,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: RunMode = typer.Option(
        RunMode.cli,
        "--mode",
        case_sensitive=False,
        help="cli runs a subcommand, api starts the HTTP server",
    ),
    host: Optional[str] = typer.Option(None, "--host", help="API bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="API port"),
) -> None:
    """Payment fee calculator - CLI or API mode."""
    if mode is RunMode.api:
        _serve_api(host, port)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
