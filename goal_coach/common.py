import logging
import math
from typing import Any

logger = logging.getLogger("common")


def coerce_minutes(value: Any, default: int, minimum: int) -> int:
    """
    Leniently turn a minutes value into an int no smaller than `minimum`.

    Strings are parsed as numbers ("7.9" -> 7). Anything missing, non-numeric
    or non-finite falls back to `default` before the floor is applied.
    """
    number: Any = default
    if isinstance(value, bool) or value is None:
        number = default
    elif isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            logger.debug("Ignoring malformed minutes value %r", value)
            number = default

    if isinstance(number, float) and not math.isfinite(number):
        number = default
    return max(minimum, int(number))
