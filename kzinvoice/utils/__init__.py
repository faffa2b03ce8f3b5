"""Utility helpers for the invoicing system."""

from .number_to_words import TENGE, Currency, amount_to_words, choose_plural_form, integer_to_russian_words

__all__ = ["TENGE", "Currency", "amount_to_words", "choose_plural_form", "integer_to_russian_words"]
