from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

from dashboard.views import DashboardView, FillStatus, NotificationLevel, format_time_ago

_STATUS_COLORS = {
    FillStatus.ok: typer.colors.GREEN,
    FillStatus.warning: typer.colors.YELLOW,
    FillStatus.danger: typer.colors.RED,
}

_NOTIFICATION_COLORS = {
    NotificationLevel.danger: typer.colors.RED,
    NotificationLevel.warning: typer.colors.YELLOW,
    NotificationLevel.battery: typer.colors.MAGENTA,
    NotificationLevel.ok: typer.colors.GREEN,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_bin(payload: Dict[str, Any]) -> None:
    echo_heading(f"Bin {payload.get('binId')}")
    echo_key_values(
        [
            ("location", payload.get("location")),
            ("fillLevel", f"{payload.get('fillLevel')}%"),
            ("batteryLevel", f"{payload.get('batteryLevel')}%"),
            ("temperature", payload.get("temperature")),
            ("sensorStatus", payload.get("sensorStatus")),
            ("capacity", payload.get("capacity")),
            ("lastEmptied", payload.get("lastEmptied")),
            ("lastUpdated", payload.get("lastUpdated")),
        ]
    )


def render_bin_table(bins: Iterable[Dict[str, Any]]) -> None:
    rows = list(bins)
    echo_heading("Bins")
    if not rows:
        typer.echo("No bins registered.")
        return
    for item in rows:
        typer.echo(
            f"  - {item.get('binId')}: {item.get('location')} "
            f"fill={item.get('fillLevel')}% battery={item.get('batteryLevel')}% "
            f"status={item.get('sensorStatus')}"
        )


def render_dashboard(view: DashboardView, connected: bool | None = None) -> None:
    if connected is not None:
        state = "connected" if connected else "offline"
        typer.secho(f"[{state}]", fg=typer.colors.GREEN if connected else typer.colors.RED)

    echo_heading("Fleet")
    echo_key_values(
        [
            ("total_bins", view.stats.total_bins),
            ("average_fill", f"{view.stats.average_fill}%"),
            ("collection_due", view.stats.collection_due),
            ("over_threshold", view.stats.over_threshold),
        ]
    )

    typer.echo()
    echo_heading("Bins")
    for card in view.cards:
        typer.secho(
            f"  - Bin {card.bin_id} [{card.status.value}] {card.fill_level}% "
            f"{card.location} battery={card.battery_level}% "
            f"emptied {format_time_ago(card.last_emptied)}",
            fg=_STATUS_COLORS[card.status],
        )

    typer.echo()
    echo_heading("Notifications")
    for notification in view.notifications:
        typer.secho(f"  - {notification.message}", fg=_NOTIFICATION_COLORS[notification.level])
