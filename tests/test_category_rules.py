from datetime import date

import pytest

from finance_tracker.category_rules import (
    CategoryRule,
    apply_rules,
    auto_categorize,
    is_uncategorized,
    rules_from_config,
    suggest_category,
)
from finance_tracker.errors import SnapshotError
from finance_tracker.models import Transaction


@pytest.mark.parametrize('description, amount, category, confidence', [
    ('Albert Heijn 1042 Utrecht', -23.5, 'groceries', 75),
    ('Thuisbezorgd.nl', -31, 'food', 75),
    ('Uber Eats order', -18, 'food', 75),
    ('Uber trip', -18, 'transport', 75),
    ('Eneco energie', -240, 'housing', 85),
    ('Zilveren Kruis premie', -140, 'insurance', 75),
    ('bol.com bestelling', -20, 'shopping', 50),
    ('Coolblue laptop', -120, 'shopping', 55),
    ('Lunch with team', -12, 'food', 75),
    ('Random merchant 77', -12, 'shopping', 50),
    ('Random merchant 77', -450, 'onbekend', 40),
])
def test_suggest_category(description, amount, category, confidence):
    suggestion = suggest_category(description, amount)

    assert suggestion.category == category
    assert suggestion.confidence == confidence
    assert suggestion.reason


def test_user_rules_win_over_built_in_rules():
    rules = [CategoryRule(keyword='albert heijn', category='food')]

    assert suggest_category('Albert Heijn to go', -8, rules).category == 'food'


def test_whole_word_rules_and_disabled_rules():
    rules = [
        CategoryRule(keyword='gas', category='housing', whole_word=True),
        CategoryRule(keyword='vegas', category='vacation', enabled=False),
    ]

    assert apply_rules('Gas bill', rules) == 'housing'
    assert apply_rules('Las Vegas trip', rules) is None
    assert apply_rules('', rules) is None


@pytest.mark.parametrize('category, expected', [
    ('', True),
    (None, True),
    ('Uncategorized', True),
    ('groceries', False),
])
def test_is_uncategorized(category, expected):
    assert is_uncategorized(category) is expected


def test_auto_categorize_skips_categorized_transactions():
    transactions = [
        Transaction(id='a', description='Jumbo', amount=-30, type='expense', category='', account_id='x', date=date(2024, 1, 2)),
        Transaction(id='b', description='Jumbo', amount=-30, type='expense', category='food', account_id='x', date=date(2024, 1, 2)),
    ]
    [(tx, suggestion)] = auto_categorize(transactions)

    assert tx.id == 'a'
    assert suggestion.category == 'groceries'


def test_rules_from_config_round_trip_and_validation():
    rules = rules_from_config([{'keyword': 'tikkie', 'category': 'food', 'wholeWord': True}])

    assert rules == [CategoryRule(keyword='tikkie', category='food', whole_word=True)]
    assert rules[0].to_dict() == {'keyword': 'tikkie', 'category': 'food', 'wholeWord': True, 'enabled': True}
    assert rules_from_config(None) == []
    with pytest.raises(SnapshotError):
        rules_from_config([{'keyword': '', 'category': 'food'}])
