"""Fixed-point conversions between raw on-chain integers and decimal strings.

Each currency carries its own precision (6 vs 18 fractional digits). Callers
pass the precision explicitly; nothing here guesses it.
"""
from decimal import Decimal, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal]

MAX_UINT256 = 2**256 - 1


def to_decimal(value: Number) -> Decimal:
	"""Convert user input to Decimal, going through str() so floats keep their printed digits."""
	if isinstance(value, Decimal):
		return value
	try:
		return Decimal(str(value).strip())
	except InvalidOperation as exc:
		raise ValueError(f"Not a decimal amount: {value!r}") from exc


def parse_units(value: Number, decimals: int) -> int:
	"""Human amount -> raw integer units, e.g. ("1.5", 6) -> 1500000.

	Raises ValueError for non-finite values or more fractional digits than
	`decimals` allows.
	"""
	amount = to_decimal(value)
	if not amount.is_finite():
		raise ValueError(f"Amount must be finite: {value!r}")
	scaled = amount.scaleb(decimals)
	if scaled != scaled.to_integral_value():
		raise ValueError(f"{value} has more than {decimals} fractional digits")
	return int(scaled)


def format_units(value: int, decimals: int) -> str:
	"""Raw integer units -> decimal string, e.g. (1500000, 6) -> "1.5".

	Always keeps at least one fractional digit ("1.0") and never uses exponent
	notation.
	"""
	value = int(value)
	sign = "-" if value < 0 else ""
	whole, frac = divmod(abs(value), 10**decimals)
	frac_str = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
	return f"{sign}{whole}.{frac_str or '0'}"
