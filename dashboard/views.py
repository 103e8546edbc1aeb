"""Pure derivation of dashboard view state from mirrored bins.

Nothing in this module touches the network, timers or a terminal: the same
bins and settings always produce an equal :class:`DashboardView`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Sequence

from app.schemas import Bin

WARNING_FILL_LEVEL = 60
COLLECTION_DUE_LEVEL = 70
LOW_BATTERY_LEVEL = 30


class FillStatus(str, Enum):
    ok = "ok"
    warning = "warning"
    danger = "danger"


class NotificationLevel(str, Enum):
    danger = "danger"
    warning = "warning"
    battery = "battery"
    ok = "ok"


@dataclass
class DashboardSettings:
    """User adjustable preferences owned by a single dashboard client."""

    alert_threshold: int = 85
    refresh_interval: float = 60.0
    font_size: str = "16px"
    dark_mode: bool = False


@dataclass(frozen=True)
class BinCard:
    bin_id: int
    location: str
    fill_level: int
    status: FillStatus
    battery_level: int
    temperature: int
    sensor_status: str
    last_emptied: datetime


@dataclass(frozen=True)
class FleetStats:
    total_bins: int
    average_fill: int
    collection_due: int
    over_threshold: int


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    bin_id: Optional[int] = None


@dataclass(frozen=True)
class DashboardView:
    cards: tuple[BinCard, ...]
    stats: FleetStats
    notifications: tuple[Notification, ...]

    def card(self, bin_id: int) -> Optional[BinCard]:
        for card in self.cards:
            if card.bin_id == bin_id:
                return card
        return None


ALL_CLEAR = Notification(NotificationLevel.ok, "All systems operating normally")


def classify_fill(fill_level: int, alert_threshold: int) -> FillStatus:
    if fill_level >= alert_threshold:
        return FillStatus.danger
    if fill_level >= WARNING_FILL_LEVEL:
        return FillStatus.warning
    return FillStatus.ok


def fleet_stats(bins: Sequence[Bin], settings: DashboardSettings) -> FleetStats:
    total = len(bins)
    average = round(sum(item.fill_level for item in bins) / total) if total else 0
    return FleetStats(
        total_bins=total,
        average_fill=average,
        collection_due=sum(1 for item in bins if item.fill_level >= COLLECTION_DUE_LEVEL),
        over_threshold=sum(
            1 for item in bins if item.fill_level >= settings.alert_threshold
        ),
    )


def build_notifications(
    bins: Sequence[Bin], settings: DashboardSettings
) -> tuple[Notification, ...]:
    threshold = settings.alert_threshold
    danger = [
        Notification(
            NotificationLevel.danger,
            f"Bin {item.bin_id} is {item.fill_level}% full - Immediate collection needed!",
            item.bin_id,
        )
        for item in bins
        if item.fill_level >= threshold
    ]
    warning = [
        Notification(
            NotificationLevel.warning,
            f"Bin {item.bin_id} at {item.fill_level}% - Monitor closely",
            item.bin_id,
        )
        for item in bins
        if COLLECTION_DUE_LEVEL <= item.fill_level < threshold
    ]
    battery = [
        Notification(
            NotificationLevel.battery,
            f"Bin {item.bin_id} has low battery: {item.battery_level}%",
            item.bin_id,
        )
        for item in bins
        if item.battery_level < LOW_BATTERY_LEVEL
    ]
    notifications = tuple(danger + warning + battery)
    return notifications or (ALL_CLEAR,)


def build_cards(bins: Iterable[Bin], settings: DashboardSettings) -> tuple[BinCard, ...]:
    return tuple(
        BinCard(
            bin_id=item.bin_id,
            location=item.location,
            fill_level=item.fill_level,
            status=classify_fill(item.fill_level, settings.alert_threshold),
            battery_level=item.battery_level,
            temperature=item.temperature,
            sensor_status=item.sensor_status.value,
            last_emptied=item.last_emptied,
        )
        for item in bins
    )


def derive_view(bins: Iterable[Bin], settings: DashboardSettings) -> DashboardView:
    ordered = sorted(bins, key=lambda item: item.bin_id)
    return DashboardView(
        cards=build_cards(ordered, settings),
        stats=fleet_stats(ordered, settings),
        notifications=build_notifications(ordered, settings),
    )


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    hours = int((now - moment).total_seconds() // 3600)
    days = hours // 24
    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    return "Recently"
