from .commands import CommandGateway
from .format_history import format_history
from .history_writer import HistoryWriter
from .query_history import get_status_history
from .record_history import record_status_change

__all__ = [
    "CommandGateway",
    "format_history",
    "HistoryWriter",
    "get_status_history",
    "record_status_change",
]
