"""
Process-wide logging setup.

Every record is stamped with the id of the simulation being served, taken
from a context variable the route handler sets, so interleaved requests
can be told apart in the output. ``LOG_JSON`` switches to one JSON object
per line.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional


_current_simulation: ContextVar[Optional[str]] = ContextVar("current_simulation", default=None)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s sim=%(simulation_id)s %(message)s"


def set_simulation_id(simulation_id: Optional[str]) -> None:
    _current_simulation.set(simulation_id)


class _SimulationTag(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.simulation_id = _current_simulation.get() or "-"
        return True


class _JsonLines(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "simulation": record.simulation_id,
            "message": record.getMessage(),
        }
        if record.exc_info:
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SimulationTag())
    handler.setFormatter(_JsonLines() if json_logs else logging.Formatter(_TEXT_FORMAT))
    root.addHandler(handler)
