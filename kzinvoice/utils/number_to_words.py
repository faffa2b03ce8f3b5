"""Russian number-to-words utilities for amounts in tenge."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import NamedTuple

logger = logging.getLogger(__name__)

ZERO = "ноль"
MINUS = "минус"

ONES = ["", "один", "два", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]
ONES_FEMININE = ["", "одна", "две", "три", "четыре", "пять", "шесть", "семь", "восемь", "девять"]

TEENS = [
    "десять",
    "одиннадцать",
    "двенадцать",
    "тринадцать",
    "четырнадцать",
    "пятнадцать",
    "шестнадцать",
    "семнадцать",
    "восемнадцать",
    "девятнадцать",
]

TENS = [
    "",
    "",
    "двадцать",
    "тридцать",
    "сорок",
    "пятьдесят",
    "шестьдесят",
    "семьдесят",
    "восемьдесят",
    "девяносто",
]

HUNDREDS = [
    "",
    "сто",
    "двести",
    "триста",
    "четыреста",
    "пятьсот",
    "шестьсот",
    "семьсот",
    "восемьсот",
    "девятьсот",
]

# Each entry: (one, few, many) forms and whether the group is feminine.
# Index 0 is the units tier and carries no scale word.
SCALES = [
    (("", "", ""), False),
    (("тысяча", "тысячи", "тысяч"), True),
    (("миллион", "миллиона", "миллионов"), False),
]

MAX_SUPPORTED = 1000 ** len(SCALES) - 1


class Currency(NamedTuple):
    major: tuple[str, str, str]
    minor: tuple[str, str, str]


TENGE = Currency(major=("тенге", "тенге", "тенге"), minor=("тиын", "тиын", "тиын"))

_CENT = Decimal("0.01")
# Largest decimal exponent accepted; covers every finite float.
MAX_EXPONENT = 308


def choose_plural_form(number: int, forms: tuple[str, str, str]) -> str:
    """Pick the one/few/many form agreeing with ``number``."""
    last_two = number % 100
    last_one = number % 10
    if 11 <= last_two <= 14:
        return forms[2]
    if last_one == 1:
        return forms[0]
    if 2 <= last_one <= 4:
        return forms[1]
    return forms[2]


def _chunk_to_words(chunk: int, feminine: bool = False) -> str:
    """Convert a number between 0 and 999 to words."""
    words: list[str] = []

    hundreds = chunk // 100
    remainder = chunk % 100

    if hundreds:
        words.append(HUNDREDS[hundreds])

    if 10 <= remainder <= 19:
        words.append(TEENS[remainder - 10])
    else:
        tens = remainder // 10
        ones = remainder % 10
        if tens:
            words.append(TENS[tens])
        if ones:
            words.append(ONES_FEMININE[ones] if feminine else ONES[ones])

    return " ".join(words)


def _groups_to_words(number: int) -> str:
    parts: list[str] = []
    remaining = number
    scale_idx = 0

    while remaining > 0:
        if scale_idx == len(SCALES) - 1:
            # Top tier takes whatever is left; values past the table render
            # the leftover recursively instead of failing.
            chunk, remaining = remaining, 0
        else:
            chunk, remaining = remaining % 1000, remaining // 1000
        if chunk:
            forms, feminine = SCALES[scale_idx]
            if chunk > 999:
                chunk_words = _groups_to_words(chunk)
            else:
                chunk_words = _chunk_to_words(chunk, feminine)
            if scale_idx > 0:
                chunk_words = f"{chunk_words} {choose_plural_form(chunk, forms)}"
            parts.append(chunk_words)
        scale_idx += 1

    return " ".join(reversed(parts))


def integer_to_russian_words(number: int, feminine: bool = False) -> str:
    """
    Convert an integer to Russian words.

    ``feminine`` only affects the trailing units group ("одна"/"две").
    """
    if number == 0:
        return ZERO
    if number < 0:
        return f"{MINUS} {integer_to_russian_words(abs(number), feminine)}"
    if number <= 999:
        return _chunk_to_words(number, feminine)
    if feminine and number % 1000:
        head = _groups_to_words(number - number % 1000)
        return f"{head} {_chunk_to_words(number % 1000, True)}"
    return _groups_to_words(number)


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, bool):
        raise ValueError("Amount must be a valid number.")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError("Amount must be a valid number.") from None
    if not value.is_finite():
        raise ValueError("Amount must be a finite number.")
    if value.adjusted() > MAX_EXPONENT:
        raise ValueError("Amount is too large.")
    return value


def amount_to_words(amount, currency: Currency = TENGE) -> str:
    """
    Convert a monetary amount to Russian words, e.g. ``1000`` -> "одна тысяча тенге".

    Minor units are appended as two digits ("150,5" -> "... 50 тиын") and
    omitted entirely when zero.
    """
    value = _to_decimal(amount)

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        # Rounding to whole tiyn happens on the full amount, so 0.995 and up
        # carry into the next tenge ("0.999" -> "один тенге").
        value = value.quantize(_CENT, rounding=ROUND_HALF_UP)
        integer_part = int(value.copy_abs())
        fractional_part = int((value.copy_abs() - integer_part) * 100)

    if value == 0:
        return f"{ZERO} {choose_plural_form(0, currency.major)}"
    if value < 0:
        return f"{MINUS} {amount_to_words(value.copy_abs(), currency)}"

    if integer_part > MAX_SUPPORTED:
        logger.warning("Amount %s exceeds supported magnitude %s", value, MAX_SUPPORTED)

    words = [integer_to_russian_words(integer_part), choose_plural_form(integer_part, currency.major)]
    if fractional_part:
        words.append(f"{fractional_part:02d}")
        words.append(choose_plural_form(fractional_part, currency.minor))

    return " ".join(words).strip()
