"""Keyword rules for categorizing transactions automatically.

Uncategorized transactions get a category from the first rule whose keyword
appears in their description.  User rules from ``financial-config.json``
(``categoryRules``) are tried before the built-in merchant rules, and the
built-in fallback rules come last.  A description that matches nothing is
filed under ``shopping``, unless the amount is large enough to need review.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .categories import (
    ENTERTAINMENT,
    FOOD,
    GROCERIES,
    HOUSING,
    INSURANCE,
    SHOPPING,
    TRANSPORT,
)
from .errors import SnapshotError
from .models import Transaction

UNKNOWN_CATEGORY = 'onbekend'
UNCATEGORIZED = 'uncategorized'
LARGE_AMOUNT = 200.0
SMALL_AMOUNT = 50.0


@dataclass
class CategoryRule:
    """A rule for categorizing transactions based on keywords."""
    keyword: str
    category: str
    whole_word: bool = False  # If True, match whole words only
    enabled: bool = True

    def matches(self, description: str) -> bool:
        keyword = re.escape(self.keyword.lower())
        pattern = rf'\b{keyword}\b' if self.whole_word else keyword
        return re.search(pattern, description.lower()) is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CategoryRule':
        keyword = str(data.get('keyword') or '').strip()
        category = str(data.get('category') or '').strip()
        if not keyword or not category:
            raise SnapshotError("category rule: needs a keyword and a category")
        return cls(
            keyword=keyword,
            category=category,
            whole_word=bool(data.get('wholeWord', False)),
            enabled=bool(data.get('enabled', True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'keyword': self.keyword,
            'category': self.category,
            'wholeWord': self.whole_word,
            'enabled': self.enabled,
        }


@dataclass(frozen=True)
class CategorySuggestion:
    category: str
    confidence: int
    reason: str


def _rules(table: Sequence[Tuple[str, Sequence[str]]]) -> Tuple[CategoryRule, ...]:
    return tuple(CategoryRule(keyword, category) for category, keywords in table for keyword in keywords)


# Trailing spaces in keywords such as "ah " keep them from matching inside words.
MERCHANT_RULES = _rules((
    (GROCERIES, (
        'albert heijn', 'ah ', 'jumbo', 'lidl', 'aldi', 'plus supermarkt', 'dirk', 'vomar', 'coop',
        'supermarkt', 'flink', 'picnic', 'gorillas', 'getir', 'spar', 'hoogvliet', 'deen', 'marqt',
        'ekoplaza', 'poiesz', 'nettorama', 'dekamarkt',
    )),
    (FOOD, (
        'restaurant', 'cafe', 'bar ', 'thuisbezorgd', 'uber eats', 'deliveroo', 'dominos', 'pizza',
        'subway', 'burger', 'mcdonalds', 'kfc', 'starbucks', 'horeca', 'eetcafe', 'bistro',
        'brasserie', 'lunchroom', 'bakkerij', 'bakker', 'koffie', 'coffee',
    )),
    (TRANSPORT, (
        'shell', 'bp ', 'esso', 'texaco', 'ns ', 'ov-chipkaart', 'parkeren', 'parking', 'q-park',
        'benzine', 'taxi', 'uber', 'bolt', 'train', 'metro', 'tram', 'tanken', 'brandstof',
        'autowas', 'car wash',
    )),
    (HOUSING, (
        'energie', 'eneco', 'essent', 'vattenfall', 'ziggo', 'kpn', 't-mobile', 'vodafone',
        'internet', 'huur', 'rent', 'hypotheek', 'belastingdienst', 'waternet', 'gemeente',
        'water', 'electra', 'stroom', 'verwarming', 'telefoon',
    )),
    (ENTERTAINMENT, (
        'spotify', 'netflix', 'disney', 'prime video', 'youtube', 'playstation', 'xbox', 'steam',
        'cinema', 'bioscoop', 'pathe', 'kinepolis', 'nintendo', 'gaming', 'theater', 'concert',
        'festival', 'museum', 'pretpark',
    )),
    (INSURANCE, (
        'verzekering', 'insurance', 'zilveren kruis', 'vgz', 'menzis', 'aegon', 'allianz',
        'nationale nederlanden', 'achmea', 'reaal', 'centraal beheer', 'univé',
    )),
    (SHOPPING, (
        'bol.com', 'amazon', 'coolblue', 'mediamarkt', 'action', 'hema', 'kruidvat', 'etos',
        'zeeman', 'primark', 'h&m', 'zara', 'wehkamp', 'zalando', 'klarna', 'blokker', 'xenos',
        'wibra', 'fashion', 'clothing', 'webshop', 'winkel',
    )),
    (TRANSPORT, ('motor', 'helm', 'motorcycle', 'reiskosten', 'km vergoeding')),
    (ENTERTAINMENT, ('abonnement', 'subscription', 'lidmaatschap')),
    (UNKNOWN_CATEGORY, ('notprovided', 'unknown', 'onbekend')),
))

FALLBACK_RULES = _rules((
    (SHOPPING, ('b.v.', 'bv ', 'store', 'shop', 'retail')),
    (FOOD, ('food', 'lunch', 'dinner', 'breakfast', 'diner', 'eten')),
    (TRANSPORT, ('station', 'reis', 'travel')),
))


def is_uncategorized(category: Optional[str]) -> bool:
    """True for an empty category or the literal ``uncategorized``."""
    text = (category or '').strip().lower()
    return text in ('', UNCATEGORIZED)


def rules_from_config(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[CategoryRule]:
    """Parse the ``categoryRules`` list of ``financial-config.json``."""
    return [CategoryRule.from_dict(item) for item in raw or []]


def apply_rules(description: str, rules: Iterable[CategoryRule]) -> Optional[str]:
    """Return the category of the first enabled rule matching ``description``."""
    if not description:
        return None
    for rule in rules:
        if rule.enabled and rule.matches(description):
            return rule.category
    return None


def suggest_category(
    description: str,
    amount: float,
    user_rules: Sequence[CategoryRule] = (),
) -> CategorySuggestion:
    """Pick a category for a transaction with a confidence score out of 100.

    Example:
        >>> suggest_category('Albert Heijn 1234', -23.5).category
        'groceries'
        >>> suggest_category('Transfer 8812', -450).category
        'onbekend'
    """
    size = abs(amount)
    category = apply_rules(description, (*user_rules, *MERCHANT_RULES, *FALLBACK_RULES))
    if category is None:
        category = UNKNOWN_CATEGORY if size >= LARGE_AMOUNT else SHOPPING

    if category == SHOPPING and size < SMALL_AMOUNT:
        return CategorySuggestion(category, 50, "Auto-categorized as default (small expense)")
    if category == UNKNOWN_CATEGORY and size >= LARGE_AMOUNT:
        return CategorySuggestion(category, 40, "Large expense - no clear match (review recommended)")
    if size >= LARGE_AMOUNT:
        return CategorySuggestion(category, 85, "Auto-categorized (large amount, high confidence match)")
    if category == SHOPPING:
        return CategorySuggestion(category, 55, "Auto-categorized as default category")
    return CategorySuggestion(category, 75, "Auto-categorized based on description keywords")


def auto_categorize(
    transactions: Iterable[Transaction],
    user_rules: Sequence[CategoryRule] = (),
) -> List[Tuple[Transaction, CategorySuggestion]]:
    """Suggest categories for every uncategorized transaction; others are left out."""
    return [
        (tx, suggest_category(tx.description, tx.amount, user_rules))
        for tx in transactions
        if is_uncategorized(tx.category)
    ]
