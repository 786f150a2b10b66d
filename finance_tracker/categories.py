"""Category lexicon and budget classification.

Free-text Dutch/English category names are normalized into nine canonical
budget categories, and each canonical category belongs to one of the three
budget buckets of a 50/30/20 budget.  All tables are read-only mappings.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

HOUSING = 'housing'
INSURANCE = 'insurance'
TRANSPORT = 'transport'
GROCERIES = 'groceries'
FOOD = 'food'
ENTERTAINMENT = 'entertainment'
SHOPPING = 'shopping'
VACATION = 'vacation'
SAVINGS = 'savings'

BUDGET_CATEGORIES = (
    HOUSING,
    INSURANCE,
    TRANSPORT,
    GROCERIES,
    FOOD,
    ENTERTAINMENT,
    SHOPPING,
    VACATION,
    SAVINGS,
)
DEFAULT_CATEGORY = SHOPPING

NEEDS = 'needs'
WANTS = 'wants'
BUDGET_TYPES = (NEEDS, WANTS, SAVINGS)

BUDGET_PERCENTAGES: Mapping[str, float] = MappingProxyType({
    NEEDS: 0.50,
    WANTS: 0.30,
    SAVINGS: 0.20,
})

# Groceries belong to "wants", not "needs".
CATEGORY_TO_BUDGET_TYPE: Mapping[str, str] = MappingProxyType({
    HOUSING: NEEDS,
    INSURANCE: NEEDS,
    TRANSPORT: NEEDS,
    GROCERIES: WANTS,
    FOOD: WANTS,
    ENTERTAINMENT: WANTS,
    SHOPPING: WANTS,
    VACATION: WANTS,
    SAVINGS: SAVINGS,
})

VARIABLE_CATEGORIES = (GROCERIES, FOOD, ENTERTAINMENT, SHOPPING, VACATION, TRANSPORT)
FIXED_CATEGORIES = (HOUSING, INSURANCE)

FREQUENCY_TO_MONTHLY: Mapping[str, float] = MappingProxyType({
    'monthly': 1.0,
    'quarterly': 1 / 3,
    'yearly': 1 / 12,
    'weekly': 52 / 12,
    'biweekly': 26 / 12,
    'daily': 365 / 12,
})

CATEGORY_LEXICON: Mapping[str, str] = MappingProxyType({
    'boodschappen': GROCERIES,
    'groceries': GROCERIES,
    'supermarkt': GROCERIES,
    'eten drinken': FOOD,
    'eten en drinken': FOOD,
    'dining': FOOD,
    'restaurant': FOOD,
    'entertainment': ENTERTAINMENT,
    'subscriptions': ENTERTAINMENT,
    'abonnementen': ENTERTAINMENT,
    'verzekeringen': INSURANCE,
    'verzekering': INSURANCE,
    'health insurance': INSURANCE,
    'healthinsurance': INSURANCE,
    'gezondheid': INSURANCE,
    'insurance': INSURANCE,
    'belastingdienst': HOUSING,
    'belasting': HOUSING,
    'wonen': HOUSING,
    'living': HOUSING,
    'rent': HOUSING,
    'huur': HOUSING,
    'utilities': HOUSING,
    'energie': HOUSING,
    'water': HOUSING,
    'telefoon': HOUSING,
    'phone': HOUSING,
    'schuld': HOUSING,
    'debt': HOUSING,
    'housing': HOUSING,
    'motor': TRANSPORT,
    'auto': TRANSPORT,
    'car': TRANSPORT,
    'transport': TRANSPORT,
    'vervoer': TRANSPORT,
    'fuel': TRANSPORT,
    'brandstof': TRANSPORT,
    'public transport': TRANSPORT,
    'ov': TRANSPORT,
    'onbekend': SHOPPING,
    'klarna': SHOPPING,
    'voorschieten': SHOPPING,
    'winkelen': SHOPPING,
    'shopping': SHOPPING,
    'bank fees': SHOPPING,
    'vakantie': VACATION,
    'vacation': VACATION,
    'travel': VACATION,
    'sparen': SAVINGS,
    'saving': SAVINGS,
    'savings': SAVINGS,
    'spaardoel': SAVINGS,
})

GROCERY_KEYWORDS = ('boodschappen', 'groceries', 'supermarkt', 'albert heijn', 'jumbo', 'lidl', 'aldi')
SAVINGS_TRANSACTION_KEYWORDS = ('spaardoel', 'savings goal')
SAVINGS_SHORT_KEYWORD = 'sparen'
SAVINGS_SHORT_MAX_LENGTH = 20


def clean_category_text(value: Optional[str]) -> str:
    """Lower-case a free-text category and collapse separators to single spaces."""
    if not value:
        return ''
    text = re.sub(r'[&\-_]', ' ', str(value).lower())
    return re.sub(r'\s+', ' ', text).strip()


def _contains_word(text: str, keyword: str) -> bool:
    return re.search(rf'\b{re.escape(keyword)}\b', text) is not None


def normalize_category(category: Optional[str]) -> str:
    """Normalize a free-text category into a canonical budget category.

    Exact lexicon hits win, then lexicon keywords contained in the text as
    whole words, then the canonical category names themselves.  Anything
    unmatched becomes ``shopping``.

    Example:
        >>> normalize_category('Eten & Drinken')
        'food'
        >>> normalize_category('Huur woning')
        'housing'
        >>> normalize_category('Something else')
        'shopping'
    """
    cleaned = clean_category_text(category)
    if not cleaned:
        return DEFAULT_CATEGORY

    hit = CATEGORY_LEXICON.get(cleaned)
    if hit:
        return hit

    # Longest keywords first so "public transport" beats "transport"
    for keyword in sorted(CATEGORY_LEXICON, key=len, reverse=True):
        if _contains_word(cleaned, keyword):
            return CATEGORY_LEXICON[keyword]

    if cleaned in BUDGET_CATEGORIES:
        return cleaned

    return DEFAULT_CATEGORY


def budget_type_for(category: Optional[str]) -> str:
    """Return the budget bucket (needs/wants/savings) for a free-text category."""
    return CATEGORY_TO_BUDGET_TYPE.get(normalize_category(category), WANTS)


def is_mapped_category(category: Optional[str]) -> bool:
    """True when the category is recognised by the lexicon rather than defaulted."""
    cleaned = clean_category_text(category)
    if not cleaned:
        return False
    if cleaned in CATEGORY_LEXICON or cleaned in BUDGET_CATEGORIES:
        return True
    return any(_contains_word(cleaned, keyword) for keyword in CATEGORY_LEXICON)


def is_variable_category(category: Optional[str]) -> bool:
    return normalize_category(category) in VARIABLE_CATEGORIES


def is_fixed_category(category: Optional[str]) -> bool:
    return normalize_category(category) in FIXED_CATEGORIES


def is_grocery_item(name: Optional[str]) -> bool:
    """Check whether an expense or transaction name looks like groceries."""
    if not name:
        return False
    lowered = name.lower()
    return any(keyword in lowered for keyword in GROCERY_KEYWORDS)


def is_savings_transaction(description: Optional[str]) -> bool:
    """Check whether a description refers to a savings-goal contribution."""
    if not description:
        return False
    lowered = description.lower()
    if any(keyword in lowered for keyword in SAVINGS_TRANSACTION_KEYWORDS):
        return True
    return SAVINGS_SHORT_KEYWORD in lowered and len(lowered) < SAVINGS_SHORT_MAX_LENGTH


def monthly_multiplier(frequency: Optional[str]) -> float:
    """Frequency multiplier to a monthly equivalent; unknown values count as monthly."""
    if not frequency:
        return 1.0
    return FREQUENCY_TO_MONTHLY.get(str(frequency).strip().lower(), 1.0)


def convert_to_monthly(amount: float, frequency: Optional[str]) -> float:
    """Convert an amount paid at ``frequency`` into its monthly equivalent.

    Example:
        >>> convert_to_monthly(1200, 'yearly')
        100.0
    """
    return float(amount) * monthly_multiplier(frequency)


def normalize_budget_mappings(raw: Optional[Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Clean the user-editable ``budgetCategoryMappings`` block.

    Each canonical budget category maps to a list of transaction category ids
    or names.  Older files store a single string instead of a list.

    Example:
        >>> normalize_budget_mappings({'groceries': 'cat-7', 'food': None})
        {'groceries': ['cat-7'], 'food': []}
    """
    mappings: Dict[str, List[str]] = {}
    if not isinstance(raw, Mapping):
        return mappings
    for key, value in raw.items():
        if isinstance(value, str):
            mappings[key] = [value]
        elif isinstance(value, (list, tuple)):
            mappings[key] = [str(item) for item in value]
        else:
            mappings[key] = []
    return mappings


def unmapped_budget_categories(mappings: Mapping[str, List[str]]) -> List[str]:
    """Canonical budget categories without any mapped transaction category."""
    return [category for category in BUDGET_CATEGORIES if not mappings.get(category)]


def mapping_lookup(mappings: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Invert the budget mappings into a transaction category -> budget category lookup.

    Keys are lower-cased; mappings onto names that are not canonical budget
    categories are ignored.
    """
    lookup: Dict[str, str] = {}
    for budget_category, sources in normalize_budget_mappings(mappings).items():
        if budget_category not in BUDGET_CATEGORIES:
            continue
        for source in sources:
            lookup.setdefault(source.strip().lower(), budget_category)
    return lookup
