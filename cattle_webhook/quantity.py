"""
Kubernetes resource quantity parsing and quota limit normalization.

Quantities are kept as exact rationals so comparisons across suffixes
(``1Gi`` vs ``1G``, ``500m`` vs ``0.5``) never lose precision.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Dict, Mapping, Optional, Union

from cattle_webhook.exceptions import QuantityParseError

QuantityValue = Union[str, int, float]

BINARY_SUFFIXES = {
    "Ki": 2 ** 10,
    "Mi": 2 ** 20,
    "Gi": 2 ** 30,
    "Ti": 2 ** 40,
    "Pi": 2 ** 50,
    "Ei": 2 ** 60,
}

DECIMAL_SUFFIXES = {
    "n": Fraction(1, 10 ** 9),
    "u": Fraction(1, 10 ** 6),
    "m": Fraction(1, 10 ** 3),
    "k": Fraction(10 ** 3),
    "M": Fraction(10 ** 6),
    "G": Fraction(10 ** 9),
    "T": Fraction(10 ** 12),
    "P": Fraction(10 ** 15),
    "E": Fraction(10 ** 18),
}

# Kubernetes quantities are capped at the int64 range
MAX_QUANTITY = Fraction(2 ** 63 - 1)
MAX_EXPONENT = 36

_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?:(?P<binary>Ki|Mi|Gi|Ti|Pi|Ei)"
    r"|(?P<exponent>[eE][+-]?\d+)"
    r"|(?P<decimal>[numkMGTPE]))?\Z"
)

# Field names of the quota limit object as stored on projects, mapped to
# the Kubernetes resource names they stand for.
RESOURCE_NAMES = {
    "pods": "pods",
    "services": "services",
    "replicationControllers": "replicationcontrollers",
    "secrets": "secrets",
    "configMaps": "configmaps",
    "persistentVolumeClaims": "persistentvolumeclaims",
    "servicesNodePorts": "services.nodeports",
    "servicesLoadBalancers": "services.loadbalancers",
    "requestsCpu": "requests.cpu",
    "requestsMemory": "requests.memory",
    "requestsStorage": "requests.storage",
    "limitsCpu": "limits.cpu",
    "limitsMemory": "limits.memory",
}


def parse_quantity(value: QuantityValue) -> Fraction:
    """
    Parse a Kubernetes quantity into an exact rational.

    Examples:
        "2Gi" -> 2147483648
        "500m" -> 1/2
        "1e3" -> 1000

    Raises:
        QuantityParseError: if the value is not a valid quantity, is not
            finite, or its magnitude exceeds the int64 range
    """
    if isinstance(value, bool):
        raise QuantityParseError(f"invalid quantity: {value!r}")
    if isinstance(value, int):
        return _bounded(Fraction(value), value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise QuantityParseError(f"invalid quantity: {value!r}")
        return _bounded(Fraction(Decimal(repr(value))), value)
    if not isinstance(value, str):
        raise QuantityParseError(f"invalid quantity: {value!r}")

    match = _QUANTITY_RE.match(value)
    if not match:
        raise QuantityParseError(f"invalid quantity: {value!r}")

    try:
        number = Fraction(Decimal(match.group("number")))
    except InvalidOperation as e:
        raise QuantityParseError(f"invalid quantity: {value!r}") from e

    if match.group("binary"):
        number *= BINARY_SUFFIXES[match.group("binary")]
    elif match.group("exponent"):
        exponent_text = match.group("exponent")[1:]
        sign, digits = exponent_text[:1], exponent_text.lstrip("+-").lstrip("0")
        if len(digits) > len(str(MAX_EXPONENT)) or int(digits or "0") > MAX_EXPONENT:
            raise QuantityParseError(f"quantity exponent out of range: {value!r}")
        exponent = int(digits or "0")
        number *= Fraction(10) ** (-exponent if sign == "-" else exponent)
    elif match.group("decimal"):
        number *= DECIMAL_SUFFIXES[match.group("decimal")]
    return _bounded(number, value)


def _bounded(number: Fraction, value: QuantityValue) -> Fraction:
    if abs(number) > MAX_QUANTITY:
        raise QuantityParseError(f"quantity too large: {value!r}")
    return number


def format_quantity(value: Fraction) -> str:
    """Render a parsed quantity the way it is shown in denial messages."""
    if value.denominator == 1:
        return str(value.numerator)
    milli = value * 1000
    if milli.denominator == 1:
        return f"{milli.numerator}m"
    return str(float(value))


def canonical_resource_name(key: str) -> str:
    return RESOURCE_NAMES.get(key, key)


def normalize_limit(limit: Optional[Mapping[str, Optional[QuantityValue]]]) -> Dict[str, Fraction]:
    """
    Convert a quota limit into a map of resource name to parsed quantity.

    Unset entries (None or empty string) are not declared limits and are
    dropped.
    """
    normalized: Dict[str, Fraction] = {}
    if not limit:
        return normalized

    for key, value in limit.items():
        if value is None or value == "":
            continue
        name = canonical_resource_name(key)
        if name in normalized:
            raise QuantityParseError(f"resource {name} is set more than once")
        try:
            normalized[name] = parse_quantity(value)
        except QuantityParseError as e:
            raise QuantityParseError(f"resource {name}: {e}") from e
    return normalized
