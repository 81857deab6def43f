"""
Agmarknet record normalization.

Raw records from the data.gov.in Agmarknet resource look like::

    {
        "state": "Maharashtra",
        "market": "Lasalgaon APMC",
        "commodity": "Onion",
        "arrival_date": "15/01/2025",
        "min_price": "1800",
        "max_price": "2600",
        "modal_price": "2250",
        "arrival_quantity": ""
    }

Values arrive as strings; dates are ``DD/MM/YYYY``. ``normalize_record``
converts one record into a ``NormalizedRecord``; ``build_price_series``
turns a batch for one (commodity, mandi) pair into an oldest-first
``PriceSeries`` with one point per date (the last record for a date wins).

Fetching and storing records is handled elsewhere; this module only
canonicalizes them.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError

from kisansense.models.market import PricePoint, PriceSeries

logger = logging.getLogger(__name__)

_DATE_FORMAT = "%d/%m/%Y"


@dataclass(frozen=True)
class NormalizedRecord:
    """One Agmarknet row with typed values and trimmed names."""

    commodity: str
    market: str
    state: Optional[str]
    point: PricePoint


def parse_arrival_date(raw: str) -> date:
    """Parse an Agmarknet ``DD/MM/YYYY`` date.

    Raises:
        ValueError: If the string is not in ``DD/MM/YYYY`` form.
    """
    return datetime.strptime(raw.strip(), _DATE_FORMAT).date()


def parse_price(value: Any, field: str) -> float:
    """Parse an Agmarknet price cell (string or number) into a finite float.

    Raises:
        ValueError: If the cell is null, blank, unparseable, NaN or infinite.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{field} is missing.")
    price = float(value)
    if not math.isfinite(price):
        raise ValueError(f"{field} must be finite, got {value!r}.")
    return price


def normalize_record(record: Mapping[str, Any]) -> NormalizedRecord:
    """Convert one raw Agmarknet record.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a date or price is missing, unparseable or not finite,
            or the prices are inconsistent (``pydantic.ValidationError`` is a
            ``ValueError``).
    """
    point = PricePoint(
        date=parse_arrival_date(str(record["arrival_date"])),
        modal_price=parse_price(record["modal_price"], "modal_price"),
        min_price=parse_price(record["min_price"], "min_price"),
        max_price=parse_price(record["max_price"], "max_price"),
        arrival_quantity=_optional_float(record.get("arrival_quantity")),
    )
    state = record.get("state")
    return NormalizedRecord(
        commodity=str(record["commodity"]).strip(),
        market=str(record["market"]).strip(),
        state=state.strip() if isinstance(state, str) and state.strip() else None,
        point=point,
    )


def build_price_series(
    records: Iterable[Mapping[str, Any]],
    commodity: str,
    market: str,
) -> PriceSeries:
    """Build an oldest-first ``PriceSeries`` for one (commodity, mandi) pair.

    Records for other pairs are ignored (names compared case-insensitively
    after trimming). Records that fail normalization are skipped and logged.
    """
    want_commodity = commodity.strip().lower()
    want_market = market.strip().lower()

    by_date: dict[date, PricePoint] = {}
    skipped = 0
    for record in records:
        try:
            normalized = normalize_record(record)
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            skipped += 1
            logger.debug("Skipping malformed Agmarknet record: %s", exc)
            continue
        if normalized.commodity.lower() != want_commodity:
            continue
        if normalized.market.lower() != want_market:
            continue
        by_date[normalized.point.date] = normalized.point

    if skipped:
        logger.warning(
            "Skipped %d malformed Agmarknet record(s) while building %s @ %s",
            skipped, commodity, market,
        )

    points = tuple(by_date[d] for d in sorted(by_date))
    return PriceSeries(commodity=commodity.strip(), market=market.strip(), points=points)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    parsed = float(value)
    return parsed if math.isfinite(parsed) else None
