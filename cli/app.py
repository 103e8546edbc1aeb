from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_bin, render_bin_table, render_dashboard
from dashboard.channel import websocket_channel_factory
from dashboard.client import ConnectionState, run_dashboard
from dashboard.views import DashboardSettings, DashboardView


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for monitoring and managing the smart bin fleet.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    ws_url: Optional[str] = typer.Option(
        None,
        "--ws-url",
        help="Realtime channel URL (defaults to the base URL's /ws endpoint).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, ws_url=ws_url)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List every bin ordered by id."""
    state = _get_state(ctx)
    render_bin_table(state.client.list_bins())


@app.command("show")
def show_command(
    ctx: typer.Context,
    bin_id: int = typer.Argument(..., min=1, help="Bin identifier."),
) -> None:
    """Show the full record of one bin."""
    state = _get_state(ctx)
    render_bin(state.client.get_bin(bin_id))


@app.command("create")
def create_command(
    ctx: typer.Context,
    bin_id: int = typer.Argument(..., min=1, help="New, unique bin identifier."),
    location: str = typer.Argument(..., help="Where the bin is installed."),
    capacity: int = typer.Option(100, "--capacity", min=1, help="Bin capacity."),
) -> None:
    """Register a new bin."""
    state = _get_state(ctx)
    created = state.client.create_bin(bin_id, location, capacity)
    typer.secho(f"Bin {created.get('binId')} created.", fg=typer.colors.GREEN)
    render_bin(created)


@app.command("update")
def update_command(
    ctx: typer.Context,
    bin_id: int = typer.Argument(..., min=1, help="Bin identifier."),
    fill_level: Optional[int] = typer.Option(None, "--fill-level", min=0, max=100),
    battery_level: Optional[int] = typer.Option(None, "--battery-level", min=0, max=100),
    temperature: Optional[int] = typer.Option(None, "--temperature"),
    sensor_status: Optional[str] = typer.Option(None, "--status", help="Sensor status."),
    location: Optional[str] = typer.Option(None, "--location"),
) -> None:
    """Partially update a bin."""
    changes: Dict[str, Any] = {
        key: value
        for key, value in (
            ("fillLevel", fill_level),
            ("batteryLevel", battery_level),
            ("temperature", temperature),
            ("sensorStatus", sensor_status),
            ("location", location),
        )
        if value is not None
    }
    if not changes:
        raise typer.BadParameter("Provide at least one field to update.")
    state = _get_state(ctx)
    updated = state.client.update_bin(bin_id, changes)
    typer.secho(f"Bin {bin_id} updated.", fg=typer.colors.GREEN)
    render_bin(updated)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    bin_id: int = typer.Argument(..., min=1, help="Bin identifier."),
) -> None:
    """Delete a bin."""
    state = _get_state(ctx)
    state.client.delete_bin(bin_id)
    typer.secho(f"Bin {bin_id} deleted.", fg=typer.colors.GREEN)


@app.command("login")
def login_command(
    ctx: typer.Context,
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Log in and print a session token."""
    state = _get_state(ctx)
    payload = state.client.login(username, password)
    user = payload.get("user") or {}
    typer.secho(f"Logged in as {user.get('username')} ({user.get('role')}).", fg=typer.colors.GREEN)
    typer.echo(payload.get("token"))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    threshold: Optional[int] = typer.Option(
        None, "--threshold", min=0, max=100, help="Alert threshold in percent."
    ),
    refresh_interval: Optional[float] = typer.Option(
        None, "--refresh-interval", min=0.1, help="Seconds between offline refresh ticks."
    ),
    duration: Optional[float] = typer.Option(
        None, "--duration", min=0.1, help="Stop after this many seconds."
    ),
) -> None:
    """Follow live bin state and re-render the dashboard on every change."""
    state = _get_state(ctx)
    config = state.config
    settings = DashboardSettings(
        alert_threshold=threshold if threshold is not None else config.alert_threshold,
        refresh_interval=(
            refresh_interval if refresh_interval is not None else config.refresh_interval
        ),
    )

    connection = {"state": ConnectionState.disconnected}

    def _track(new_state: ConnectionState) -> None:
        connection["state"] = new_state

    def _render(view: DashboardView) -> None:
        typer.echo()
        render_dashboard(view, connected=connection["state"] is ConnectionState.connected)

    typer.echo(f"Watching {config.ws_url} (threshold={settings.alert_threshold}%) ...")
    try:
        asyncio.run(
            run_dashboard(
                websocket_channel_factory(config.ws_url),
                settings=settings,
                on_render=_render,
                duration=duration,
                on_state_change=_track,
            )
        )
    except KeyboardInterrupt:
        typer.echo("Stopped.")
