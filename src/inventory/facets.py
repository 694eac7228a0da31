from __future__ import annotations

from dataclasses import asdict
from typing import Any, Sequence

import pandas as pd

from inventory.data_models import VehicleRecord


def records_frame(records: Sequence[VehicleRecord]) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in records])


def _distinct_text(frame: pd.DataFrame, column: str) -> list[str]:
    values = frame[column].dropna().astype(str).str.strip()
    return sorted(set(values[values != ""]))


def available_filters(records: Sequence[VehicleRecord]) -> dict[str, Any]:
    """Filter choices derived from the loaded inventory."""
    if not records:
        return {
            "brands": [],
            "years": [],
            "fuel_types": [],
            "transmissions": [],
            "body_types": [],
            "min_year": None,
            "max_year": None,
            "min_price": None,
            "max_price": None,
        }

    frame = records_frame(records)
    years = pd.to_numeric(frame["year"], errors="coerce").dropna()
    years = years[(years > 1900) & (years < 2100)].astype(int)
    prices = pd.to_numeric(frame["price"], errors="coerce").dropna()
    prices = prices[prices > 0]

    return {
        "brands": _distinct_text(frame, "brand"),
        "years": sorted(set(years.tolist()), reverse=True),
        "fuel_types": _distinct_text(frame, "fuel_type"),
        "transmissions": _distinct_text(frame, "transmission"),
        "body_types": _distinct_text(frame, "body_type"),
        "min_year": int(years.min()) if not years.empty else None,
        "max_year": int(years.max()) if not years.empty else None,
        "min_price": int(prices.min()) if not prices.empty else None,
        "max_price": int(prices.max()) if not prices.empty else None,
    }
