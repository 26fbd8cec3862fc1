"""Consumption response parser module.

This module handles:
- Parsing the Octopus consumption JSON envelope
- Extracting the most recent interval reading
- Converting the interval into a midpoint timestamp and a duration

Consumption envelope (page_size=1):
    {
        "count": 48,
        "next": "...",
        "previous": null,
        "results": [
            {
                "consumption": 0.045,
                "interval_start": "2024-01-01T00:00:00Z",
                "interval_end": "2024-01-01T00:30:00Z"
            }
        ]
    }
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional

from octopus_exporter.config import MeterPoint

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")


def format_seconds(value: float) -> str:
    """Render a float with the shortest round-trip digits.

    Exponent notation is used below 1e-4 and from 1e6 upwards.

    Example:
        >>> format_seconds(1800.0)
        '1800'
        >>> format_seconds(100000.5)
        '100000.5'
        >>> format_seconds(1234567.0)
        '1.234567e+06'
    """
    if value == 0:
        return "0"
    text = repr(float(value))

    number = Decimal(text)
    exponent = number.adjusted()
    if -4 <= exponent < 6:
        return text[:-2] if text.endswith(".0") else text

    sign, digits, _ = number.normalize().as_tuple()
    mantissa = "".join(str(d) for d in digits)
    if len(mantissa) > 1:
        mantissa = f"{mantissa[0]}.{mantissa[1:]}"
    return f"{'-' if sign else ''}{mantissa}e{exponent:+03d}"


@dataclass(frozen=True)
class ConsumptionReading:
    """The most recent consumption reading for a meter.

    Attributes:
        timestamp: Midpoint of the reading interval (timezone-aware)
        consumption: Energy consumption in kWh
        interval: Interval length in seconds
        point_type: "electricity" or "gas"
        identifier: MPAN or MPRN
        meter: Meter serial number
    """
    timestamp: datetime
    consumption: float
    interval: float
    point_type: str
    identifier: str
    meter: str

    def interval_label(self) -> str:
        """Interval length rendered for the metric label, e.g. "1800"."""
        return format_seconds(self.interval)


class ConsumptionParseError(Exception):
    """Exception raised for malformed consumption responses."""
    pass


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Args:
        value: Timestamp string, e.g. "2024-01-01T00:30:00Z" or
            "2024-06-01T00:30:00+01:00"

    Returns:
        Timezone-aware datetime

    Raises:
        ConsumptionParseError: If the value is not a valid RFC 3339 timestamp

    Example:
        >>> parse_timestamp("2024-01-01T00:30:00Z").isoformat()
        '2024-01-01T00:30:00+00:00'
    """
    if not isinstance(value, str):
        raise ConsumptionParseError(f"Timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ConsumptionParseError(f"Invalid timestamp: {value}")

    if parsed.tzinfo is None:
        raise ConsumptionParseError(f"Timestamp has no UTC offset: {value}")

    return parsed


def parse_consumption(payload: Any, point: MeterPoint) -> Optional[ConsumptionReading]:
    """Extract the most recent reading from a consumption response.

    Args:
        payload: Decoded JSON response body
        point: Meter the response belongs to

    Returns:
        ConsumptionReading for the first result, or None if the results
        array is empty

    Raises:
        ConsumptionParseError: If the envelope or the result is malformed
    """
    if not isinstance(payload, Mapping):
        raise ConsumptionParseError("Response body is not a JSON object")

    results = payload.get("results")
    if not isinstance(results, list):
        raise ConsumptionParseError("Response has no results array")

    if not results:
        return None

    result = results[0]
    if not isinstance(result, Mapping):
        raise ConsumptionParseError("Result is not a JSON object")

    for key in ("interval_start", "interval_end", "consumption"):
        if key not in result:
            raise ConsumptionParseError(f"Result is missing {key}")

    start = parse_timestamp(result["interval_start"])
    end = parse_timestamp(result["interval_end"])

    consumption = result["consumption"]
    # bool is an int subclass
    if isinstance(consumption, bool) or not isinstance(consumption, (int, float)):
        raise ConsumptionParseError(f"Consumption is not a number: {consumption!r}")

    try:
        kwh = float(consumption)
    except OverflowError:
        raise ConsumptionParseError("Consumption is too large to represent as a float")

    interval = (end - start).total_seconds()

    return ConsumptionReading(
        timestamp=start + timedelta(seconds=int(interval / 2)),
        consumption=kwh,
        interval=interval,
        point_type=point.point_type,
        identifier=point.identifier,
        meter=point.meter,
    )
