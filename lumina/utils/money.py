# lumina/utils/money.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

Money = Decimal
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x if x is not None and x != "" else "0"))
    except InvalidOperation:
        raise ValueError(f"not a number: {x!r}")


def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_float(x) -> float:
    return float(round_money(x)) if x is not None else 0.0


def to_string_money(x) -> str:
    return str(round_money(x))
