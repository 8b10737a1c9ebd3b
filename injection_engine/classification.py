"""Failure classification for ERP responses.

MKG reports rejected lines as free text (English or Dutch, depending on the
installation). The keyword classifier is the fallback until MKG exposes
structured error codes; swap in another ErrorClassifier when it does.
"""

from typing import Optional, Protocol, Tuple

from injection_engine.models import LineStatus


BUSINESS_ERROR_KEYWORDS: Tuple[str, ...] = (
    "duplicate",
    "already exists",
    "invalid",
    "invalid reference",
    "constraint violation",
    "business rule",
    "validation failed",
    "unauthorized",
    "permission denied",
    "invalid quantity",
    "price validation",
    "invalid unit",
    "invalid date",
    "customer restriction",
    "not authorized",
    "access denied",
    "invalid customer",
    # Dutch MKG messages
    "voorraad tekort",
    "niet toegestaan",
    "ongeldig",
    "validatie fout",
    "artikel niet gevonden",
    "klant blokkering",
    "credit limit",
)


class ErrorClassifier(Protocol):
    """Decides whether an ERP failure is a business-rule violation."""

    def classify(self, message: Optional[str], status_code: Optional[int] = None) -> LineStatus:
        """Return BUSINESS_RULE_VIOLATION or TECHNICAL_FAILURE.

        status_code is the HTTP status when there is one, for classifiers
        that take it into account.
        """
        ...


class KeywordErrorClassifier:
    """Case-insensitive keyword match on the error text.

    The status code is ignored: a 400 or 422 without a known keyword is
    still a technical failure.
    """

    def __init__(self, keywords: Tuple[str, ...] = BUSINESS_ERROR_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def matched_keyword(self, message: Optional[str]) -> Optional[str]:
        if not message:
            return None
        lowered = message.lower()
        for keyword in self.keywords:
            if keyword in lowered:
                return keyword
        return None

    def classify(self, message: Optional[str], status_code: Optional[int] = None) -> LineStatus:
        if self.matched_keyword(message):
            return LineStatus.BUSINESS_RULE_VIOLATION
        return LineStatus.TECHNICAL_FAILURE


DEFAULT_CLASSIFIER = KeywordErrorClassifier()
