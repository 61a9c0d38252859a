"""Turn a spoken expense command into an amount and a description.

Parsing happens in two passes over the lower-cased utterance:

1. ``extract_amount`` walks ``AMOUNT_PATTERNS`` in priority order and keeps
   the first pattern whose number is positive.
2. ``extract_description`` drops the matched amount from the text, looks for
   a delimiter keyword ("on", "for") and trims filler words around what is
   left.

Only English commands such as "spent $10.50 on coffee" or "log 15 euro
taxi" are understood; number words ("ten dollars") are left to the speech
engine's text normalisation.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

from errors import NO_AMOUNT, NO_DESCRIPTION, InputError, ParseError
from models import AmountMatch, AmountPattern, ParsedCommand

logger = logging.getLogger(__name__)

# 1,234,567.89 or 1234.5; "." is the only decimal separator.
_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?"

AMOUNT_PATTERNS: tuple[AmountPattern, ...] = (
    AmountPattern(
        name="symbol",
        regex=re.compile(rf"[$£€](?P<number>{_NUMBER})"),
        priority=1,
    ),
    AmountPattern(
        name="currency_word",
        regex=re.compile(rf"(?P<number>{_NUMBER})\s*(?:dollars?|pounds?|euros?|usd)\b"),
        priority=2,
    ),
    AmountPattern(
        name="bare",
        regex=re.compile(rf"(?P<number>{_NUMBER})"),
        priority=3,
    ),
)

DELIMITER_KEYWORDS: tuple[str, ...] = ("on", "for")

FILLER_WORDS: tuple[str, ...] = (
    "spent",
    "add",
    "log",
    "cost",
    "expense",
    "was",
    "is",
    "buy",
    "get",
    "paid",
    "a",
    "an",
    "the",
)

EDGE_PUNCTUATION = ".,!?;:"


def normalize(text: str) -> str:
    return " ".join(text.split()).lower()


def to_amount(number: str) -> Optional[Decimal]:
    """Convert a matched number to a positive, finite Decimal or None."""
    try:
        value = Decimal(number.replace(",", ""))
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def extract_amount(
    text: str,
    patterns: Sequence[AmountPattern] = AMOUNT_PATTERNS,
) -> Optional[AmountMatch]:
    for pattern in sorted(patterns, key=lambda p: p.priority):
        match = pattern.regex.search(text)
        if match is None:
            continue
        value = to_amount(match.group("number"))
        if value is None:
            logger.debug("pattern %s matched %r but value is not positive", pattern.name, match.group(0))
            continue
        return AmountMatch(value=value, matched_span=match.group(0))
    return None


def remove_span(text: str, span: str) -> str:
    """Remove the first occurrence of ``span`` and collapse whitespace."""
    index = text.find(span)
    if index == -1:
        return " ".join(text.split())
    return " ".join((text[:index] + " " + text[index + len(span):]).split())


class DescriptionCleaner:
    """Delimiter lookup plus filler-word trimming for one word list."""

    def __init__(
        self,
        delimiters: Iterable[str] = DELIMITER_KEYWORDS,
        filler_words: Iterable[str] = FILLER_WORDS,
    ) -> None:
        delimiter_alts = "|".join(re.escape(word) for word in delimiters)
        filler_alts = "|".join(re.escape(word) for word in filler_words)
        self._delimiter = re.compile(rf"(?:^|\s)(?:{delimiter_alts})\s+(?P<rest>.+)$")
        self._leading = re.compile(rf"^(?:{filler_alts})\b") if filler_alts else None
        self._trailing = re.compile(rf"\b(?:{filler_alts})$") if filler_alts else None

    def extract(self, residual: str) -> Optional[str]:
        candidate = residual.strip()
        match = self._delimiter.search(candidate)
        if match is not None:
            candidate = match.group("rest")
        description = self._trim(candidate)
        return description or None

    def _trim(self, text: str) -> str:
        while True:
            trimmed = text.strip().strip(EDGE_PUNCTUATION).strip()
            if self._leading is not None:
                trimmed = self._leading.sub("", trimmed).strip()
            if self._trailing is not None:
                trimmed = self._trailing.sub("", trimmed).strip()
            if trimmed == text:
                return trimmed
            text = trimmed


_default_cleaner = DescriptionCleaner()


def extract_description(residual: str) -> Optional[str]:
    return _default_cleaner.extract(residual)


class TranscriptParser:
    def __init__(
        self,
        patterns: Sequence[AmountPattern] = AMOUNT_PATTERNS,
        delimiters: Iterable[str] = DELIMITER_KEYWORDS,
        filler_words: Iterable[str] = FILLER_WORDS,
    ) -> None:
        self._patterns = tuple(sorted(patterns, key=lambda p: p.priority))
        self._cleaner = DescriptionCleaner(delimiters, filler_words)

    def parse(self, utterance: object) -> ParsedCommand:
        """Parse one utterance.

        Raises ``InputError`` for empty or non-string input and ``ParseError``
        (reason ``NO_AMOUNT`` or ``NO_DESCRIPTION``) when the command cannot
        be understood.
        """
        if not isinstance(utterance, str) or not utterance.strip():
            raise InputError()

        text = normalize(utterance)
        amount = extract_amount(text, self._patterns)
        if amount is None:
            logger.warning("no amount found in %r", utterance)
            raise ParseError(NO_AMOUNT, utterance)

        description = self._cleaner.extract(remove_span(text, amount.matched_span))
        if description is None:
            logger.warning("no description left in %r", utterance)
            raise ParseError(NO_DESCRIPTION, utterance)

        command = ParsedCommand(amount=amount.value, description=description)
        logger.info("parsed %r as %s / %s", utterance, command.amount, command.description)
        return command


_default_parser = TranscriptParser()


def parse_transcript(utterance: object) -> ParsedCommand:
    return _default_parser.parse(utterance)
