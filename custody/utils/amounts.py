"""
Decimal <-> smallest-unit conversion.

All arithmetic is done on Decimal and int; floats never touch amounts.
"""

from decimal import Decimal, InvalidOperation

from custody.config.constants import ETHER_DECIMALS


def to_base_units(amount: Decimal | str | int, decimals: int = ETHER_DECIMALS) -> int:
    """
    Convert a human amount to integer base units (wei for ether).

    Conversion is exact. Amounts with more fractional digits than the
    token supports are rejected instead of being rounded.

    Args:
        amount: Amount as Decimal, decimal string or int
        decimals: Token decimals

    Returns:
        Amount in base units

    Raises:
        ValueError: If the amount is not a finite decimal or is too precise
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Amount {amount} has more than {decimals} fractional digits"
        )
    return int(scaled)


def from_base_units(base_units: int, decimals: int = ETHER_DECIMALS) -> Decimal:
    """
    Convert integer base units to a normalized Decimal.

    Examples:
        >>> from_base_units(500000000000000000)
        Decimal('0.5')
    """
    value = Decimal(int(base_units)).scaleb(-decimals)
    normalized = value.normalize()
    # normalize() turns 10 into 1E+1; quantize back to a plain integer
    if normalized == normalized.to_integral_value():
        return normalized.quantize(Decimal(1))
    return normalized


def format_amount(base_units: int, decimals: int = ETHER_DECIMALS) -> str:
    """Format base units as a plain decimal string ("0.5", "10")."""
    return format(from_base_units(base_units, decimals), "f")


def to_wei(amount: Decimal | str | int) -> int:
    """Convert ether to wei."""
    return to_base_units(amount, ETHER_DECIMALS)


def from_wei(wei: int) -> Decimal:
    """Convert wei to ether."""
    return from_base_units(wei, ETHER_DECIMALS)


def to_gwei(wei: int) -> Decimal:
    """Convert wei to gwei for display."""
    return from_base_units(wei, 9)
