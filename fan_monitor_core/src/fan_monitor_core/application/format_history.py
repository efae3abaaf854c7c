# fan_monitor_core/application/format_history.py

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from fan_monitor_core.domain.models import Control, HistoryRecord, Mode

DEFAULT_DISPLAY_TIMEZONE = "Asia/Ho_Chi_Minh"
TIMESTAMP_FORMAT = "%H:%M:%S %d/%m/%Y"

MODE_LABELS = {"auto": "Tự động", "manual": "Thủ công"}
STATUS_LABELS = {"on": "Bật", "off": "Tắt"}


def format_timestamp(ts: Optional[datetime], tz: ZoneInfo) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).strftime(TIMESTAMP_FORMAT)


def format_history(
    rows: Iterable[HistoryRecord],
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE,
) -> List[Dict[str, Any]]:
    """
    Project stored history rows for the dashboard, keeping their order.

    Timestamps are rendered in *display_timezone*, mode and status are
    translated to display labels, and threshold is dropped for rows recorded
    in manual mode where it has no effect.
    """
    tz = ZoneInfo(display_timezone)
    out = []
    for row in rows:
        item = asdict(row)
        item["timestamp"] = format_timestamp(row.timestamp, tz)
        item["mode"] = MODE_LABELS["auto"] if row.mode == Mode.AUTO.value else MODE_LABELS["manual"]
        item["status"] = STATUS_LABELS["on"] if row.status == Control.ON.value else STATUS_LABELS["off"]
        if row.mode == Mode.MANUAL.value:
            item["threshold"] = None
        out.append(item)
    return out
