"""CLI helper utilities for oeekit."""

from __future__ import annotations

import datetime as dt
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer

from oeekit.metrics.oee import OEELevel

# rich markup styles used for OEE bands.
LEVEL_STYLES: dict[OEELevel, str] = {
    OEELevel.EXCELLENT: "bold green",
    OEELevel.GOOD: "cyan",
    OEELevel.ACCEPTABLE: "yellow",
    OEELevel.POOR: "bold red",
}


def format_percent(value: float, digits: int = 1) -> str:
    """Render a ``[0, 1]`` ratio as a percentage string (``0.853 -> '85.3%'``)."""
    return f"{value * 100:.{digits}f}%"


def format_currency(value: float, symbol: str = "$") -> str:
    """Render an amount with thousands separators and at most two decimals.

    Whole amounts drop the decimals (``52750 -> '$52,750'``).
    """
    text = f"{abs(value):,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{text}"


def parse_day(value: str | None, *, option: str = "--from") -> dt.date | None:
    """Parse an ISO ``YYYY-MM-DD`` option value."""
    if value is None or not value.strip():
        return None
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError as exc:
        raise typer.BadParameter(
            f"Expected an ISO date (YYYY-MM-DD), got '{value}'.", param_hint=option
        ) from exc


def write_json(path: Path, payload: Mapping[str, Any] | list[Any]) -> None:
    """Write a JSON payload, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8")


__all__ = [
    "LEVEL_STYLES",
    "format_percent",
    "format_currency",
    "parse_day",
    "write_json",
]
