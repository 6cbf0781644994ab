"""Parser for free-text finance messages sent to the WhatsApp bot.

Turns messages like ``"ENTRADA R$ 100,00 Consulta Dr. João"`` into a
:class:`ParsedTransaction`. Amounts follow the pt-BR convention
(``.`` thousands separator, ``,`` decimal separator).

The parser is a pure function of its input text: no I/O, no shared state.
"""

import math
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

MAX_DESCRIPTION_LENGTH = 255
MIN_DESCRIPTION_LENGTH = 3


class TransactionKind(str, Enum):
    CREDIT = "entrada"
    DEBIT = "saida"

    @property
    def label(self) -> str:
        return "ENTRADA" if self is TransactionKind.CREDIT else "SAÍDA"


DEFAULT_DESCRIPTIONS = {
    TransactionKind.CREDIT: "Entrada registrada via WhatsApp",
    TransactionKind.DEBIT: "Saída registrada via WhatsApp",
}

# Keywords are kept without accents; text is folded before matching.
CREDIT_KEYWORDS = ("entrada", "receita", "recebimento", "credito")
DEBIT_KEYWORDS = ("saida", "despesa", "gasto", "pagamento", "debito")

_CREDIT_PATTERN = re.compile(r"\b(?:%s)\b" % "|".join(CREDIT_KEYWORDS), re.IGNORECASE)
_DEBIT_PATTERN = re.compile(r"\b(?:%s)\b" % "|".join(DEBIT_KEYWORDS), re.IGNORECASE)
_ANY_KEYWORD_PATTERN = re.compile(
    r"\b(?:%s)\b" % "|".join(CREDIT_KEYWORDS + DEBIT_KEYWORDS), re.IGNORECASE
)

# "1.234,56" | "1234,56" | "50,00" | "50"; a "." not followed by three digits
# (e.g. "1.23") is not a pt-BR amount and does not match at all.
_NUMBER = r"(?<![\d.,])(\d{1,3}(?:\.\d{3})+|\d+)(?:,(\d{1,2}))?(?!\d|\.\d)"
CURRENCY_AMOUNT_PATTERN = re.compile(r"R\$\s*" + _NUMBER, re.IGNORECASE)
BARE_AMOUNT_PATTERN = re.compile(_NUMBER)

_WHITESPACE = re.compile(r"\s+")


class FinanceParseError(ValueError):
    """Base class for messages the bot could not understand."""

    reason = "invalid"


class NoAmountFound(FinanceParseError):
    reason = "no_amount"


class AmbiguousKind(FinanceParseError):
    reason = "ambiguous_kind"


@dataclass(frozen=True)
class ParsedTransaction:
    kind: TransactionKind
    amount: float
    description: str


def normalize_message(text: str) -> str:
    """Collapse line breaks and whitespace runs into single spaces."""
    text = text.replace("\r", " ").replace("\n", " ")
    return _WHITESPACE.sub(" ", text).strip()


def _fold(text: str) -> str:
    """Lowercase and strip accents, keeping one output char per input char.

    Index positions in the folded text line up with the original, so spans
    found in one can be cut out of the other.
    """
    folded = []
    for char in text:
        base = "".join(
            c for c in unicodedata.normalize("NFKD", char.lower()) if not unicodedata.combining(c)
        )
        folded.append(base if len(base) == 1 else char)
    return "".join(folded)


def extract_amount(text: str) -> Tuple[float, Tuple[int, int]]:
    """Find the transaction amount and its span in ``text``.

    An ``R$``-prefixed amount wins over a bare number appearing earlier.
    Raises :class:`NoAmountFound` when nothing usable is present.
    """
    match = CURRENCY_AMOUNT_PATTERN.search(text) or BARE_AMOUNT_PATTERN.search(text)
    if not match:
        raise NoAmountFound("no amount in message")

    integer_part, decimal_part = match.group(1), match.group(2)
    value_string = integer_part.replace(".", "")
    if decimal_part:
        value_string += "." + decimal_part

    try:
        value = float(value_string)
    except (ValueError, OverflowError) as exc:
        raise NoAmountFound(f"unreadable amount {match.group(0)!r}") from exc

    if not math.isfinite(value) or value <= 0:
        raise NoAmountFound(f"invalid amount {match.group(0)!r}")

    return value, match.span()


def classify_kind(text: str) -> TransactionKind:
    """Decide whether the message is a credit or a debit.

    Credit terms take priority if both sets ever match.
    """
    folded = _fold(text)
    if _CREDIT_PATTERN.search(folded):
        return TransactionKind.CREDIT
    if _DEBIT_PATTERN.search(folded):
        return TransactionKind.DEBIT
    raise AmbiguousKind("no credit or debit keyword in message")


def _strip_keywords(text: str) -> str:
    folded = _fold(text)
    pieces = []
    last = 0
    for match in _ANY_KEYWORD_PATTERN.finditer(folded):
        pieces.append(text[last:match.start()])
        last = match.end()
    pieces.append(text[last:])
    return normalize_message("".join(pieces))


def extract_description(text: str, span: Tuple[int, int], kind: TransactionKind) -> str:
    start, end = span
    description = text[end:].strip()

    if len(description) < MIN_DESCRIPTION_LENGTH:
        description = _strip_keywords(text[:start])

    if len(description) < MIN_DESCRIPTION_LENGTH:
        description = DEFAULT_DESCRIPTIONS[kind]

    return description[:MAX_DESCRIPTION_LENGTH]


def parse_finance_message(message: str) -> ParsedTransaction:
    """Parse a WhatsApp finance message.

    Raises:
        NoAmountFound: no positive pt-BR amount in the text.
        AmbiguousKind: amount found but no credit/debit keyword.
    """
    text = normalize_message(message)
    amount, span = extract_amount(text)
    kind = classify_kind(text)
    description = extract_description(text, span, kind)
    return ParsedTransaction(kind=kind, amount=amount, description=description)
