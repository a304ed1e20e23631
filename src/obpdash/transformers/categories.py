"""Keyword rules for classifying accounts and transactions.

Both classifiers walk an ordered rule list and return the first match, so
the order of ``ACCOUNT_TYPE_RULES`` and ``CATEGORY_RULES`` is the tie-break
precedence. Matching is case-insensitive substring search.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class KeywordRule:
    """Assigns ``label`` when any keyword appears in the matching field."""

    label: str
    text_keywords: tuple[str, ...] = ()
    secondary_keywords: tuple[str, ...] = ()

    def matches(self, text: str, secondary: str) -> bool:
        return any(k in text for k in self.text_keywords) or any(
            k in secondary for k in self.secondary_keywords
        )


# Account label keywords, then account_type keywords
ACCOUNT_TYPE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule("savings", ("saving", "reserve"), ("saving",)),
    KeywordRule("investment", ("invest", "stock", "portfolio"), ("investment",)),
    KeywordRule("debt", ("credit", "loan", "debt"), ("loan", "credit")),
)
DEFAULT_ACCOUNT_TYPE = "checking"

# Description keywords, then counterparty keywords.
# Food precedes shopping so "Coffee Shop" is a food purchase.
CATEGORY_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(
        "food",
        ("food", "restaurant", "cafe", "coffee", "lunch", "dinner", "breakfast"),
        ("restaurant", "cafe", "coffee"),
    ),
    KeywordRule(
        "shopping",
        ("shop", "store", "purchase", "buy", "mart"),
        ("shop", "store", "retail"),
    ),
    KeywordRule(
        "transport",
        ("transport", "uber", "taxi", "train", "bus", "fare", "travel"),
        ("transport", "travel"),
    ),
    KeywordRule(
        "entertainment",
        (
            "entertainment",
            "movie",
            "subscription",
            "netflix",
            "spotify",
            "game",
            "ticket",
        ),
        ("entertainment", "cinema"),
    ),
    KeywordRule(
        "bills",
        ("bill", "utility", "electric", "water", "gas", "internet", "phone"),
        ("utility", "telecom"),
    ),
    KeywordRule(
        "income",
        ("salary", "payroll", "income", "wage"),
        ("employer", "payroll"),
    ),
    KeywordRule("transfer", ("transfer", "sent", "received")),
)
DEFAULT_CATEGORY = "other"


def _first_match(
    rules: tuple[KeywordRule, ...], text: str, secondary: str, default: str
) -> str:
    text = text.lower()
    secondary = secondary.lower()
    for rule in rules:
        if rule.matches(text, secondary):
            return rule.label
    return default


def classify_account(label: str, account_type: str) -> str:
    """Classify an account as savings, investment, debt or checking."""
    return _first_match(ACCOUNT_TYPE_RULES, label, account_type, DEFAULT_ACCOUNT_TYPE)


def categorize(description: str, other_party: str) -> str:
    """Infer a spending category from a description and counterparty name.

    Args:
        description: Transaction description or narrative
        other_party: Counterparty holder name

    Returns:
        str: The first matching category in ``CATEGORY_RULES``, or "other"
    """
    return _first_match(CATEGORY_RULES, description, other_party, DEFAULT_CATEGORY)
