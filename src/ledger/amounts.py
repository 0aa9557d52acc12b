"""
Ledger Layer - Amounts
Decimal coin values: coercion, canonical text, and exact summation
"""
from decimal import Context, Decimal, Inexact, localcontext, MAX_EMAX, MIN_EMIN
from typing import Iterable, Union

Amount = Union[Decimal, int, str, float]


def to_amount(value: Amount) -> Decimal:
    """Coerce a value to Decimal; floats go through str to avoid binary noise"""
    if isinstance(value, float):
        value = Decimal(str(value))
    elif not isinstance(value, Decimal):
        value = Decimal(value)
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {value}")
    return value

def format_amount(value: Decimal) -> str:
    """Canonical text of an amount: 10, 10.0 and 10.00 encode the same"""
    # normalize() rounds to context precision, so size it to the digits
    exact = Context(prec=max(len(value.as_tuple().digits), 1), Emax=MAX_EMAX, Emin=MIN_EMIN)
    return format(value.normalize(exact), "f")

def sum_amounts(values: Iterable[Decimal]) -> Decimal:
    """
    Exact sum of amounts.

    Precision is sized to cover every digit from the largest operand down to
    the smallest exponent, plus room for carries. Inexact is trapped, so a
    rounded total raises instead of silently creating or losing value.
    """
    values = list(values)
    if not values:
        return Decimal(0)

    highest = max(value.adjusted() for value in values)
    lowest = min(value.as_tuple().exponent for value in values)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, highest - lowest + len(str(len(values))) + 2)
        ctx.Emax = MAX_EMAX
        ctx.Emin = MIN_EMIN
        ctx.traps[Inexact] = True
        total = Decimal(0)
        for value in values:
            total += value
        return total
