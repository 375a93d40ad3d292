from fractions import Fraction
from typing import Dict, Mapping, Optional, Set, Tuple

from cattle_webhook.quantity import QuantityValue, format_quantity, normalize_limit


def quota_fits(outer: Mapping[str, Fraction], inner: Mapping[str, Fraction]) -> Tuple[bool, Set[str]]:
    """
    Check that every limit in ``inner`` fits within ``outer``.

    Only resources present in both maps are compared. A resource missing
    from ``outer`` is a field presence problem and is never reported here.
    """
    exceeded = {
        name
        for name, value in inner.items()
        if name in outer and value > outer[name]
    }
    return not exceeded, exceeded


def limit_fits(
    outer_limit: Optional[Mapping[str, Optional[QuantityValue]]],
    inner_limit: Optional[Mapping[str, Optional[QuantityValue]]],
) -> Tuple[bool, Dict[str, Fraction]]:
    """
    Normalize two raw quota limits and check that ``inner_limit`` fits.

    Returns the fit flag and the exceeded resources with their inner
    quantities.

    Raises:
        QuantityParseError: if either limit holds a malformed quantity
    """
    outer = normalize_limit(outer_limit)
    inner = normalize_limit(inner_limit)
    fits, exceeded = quota_fits(outer, inner)
    return fits, {name: inner[name] for name in exceeded}


def describe_resources(resources: Mapping[str, Fraction]) -> str:
    return ", ".join(
        f"{name}={format_quantity(value)}" for name, value in sorted(resources.items())
    )
