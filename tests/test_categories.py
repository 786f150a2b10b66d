import pytest

from finance_tracker import categories as cat


@pytest.mark.parametrize('raw, expected', [
    ('Boodschappen', 'groceries'),
    ('Eten & Drinken', 'food'),
    ('eten-en-drinken', 'food'),
    ('Huur woning', 'housing'),
    ('Verzekering auto', 'insurance'),
    ('Health Insurance', 'insurance'),
    ('Public transport', 'transport'),
    ('Sparen', 'savings'),
    ('Something else', 'shopping'),
    ('', 'shopping'),
    (None, 'shopping'),
])
def test_normalize_category(raw, expected):
    assert cat.normalize_category(raw) == expected


def test_budget_types_follow_policy():
    assert cat.budget_type_for('groceries') == cat.WANTS
    assert cat.budget_type_for('rent') == cat.NEEDS
    assert cat.budget_type_for('savings') == cat.SAVINGS
    assert cat.budget_type_for('unknown thing') == cat.WANTS


def test_lookup_tables_are_read_only():
    with pytest.raises(TypeError):
        cat.CATEGORY_LEXICON['new'] = cat.FOOD
    with pytest.raises(TypeError):
        cat.BUDGET_PERCENTAGES['needs'] = 0.9


def test_default_percentages_sum_to_one():
    assert sum(cat.BUDGET_PERCENTAGES.values()) == pytest.approx(1.0)


@pytest.mark.parametrize('frequency, expected', [
    ('monthly', 120),
    ('yearly', 10),
    ('quarterly', 40),
    ('weekly', 120 * 52 / 12),
    ('biweekly', 120 * 26 / 12),
    ('every now and then', 120),
    (None, 120),
])
def test_convert_to_monthly(frequency, expected):
    assert cat.convert_to_monthly(120, frequency) == pytest.approx(expected)


def test_keyword_detection():
    assert cat.is_grocery_item('Albert Heijn 1234')
    assert not cat.is_grocery_item('Netflix')
    assert cat.is_savings_transaction('Sparen: Holiday')
    assert cat.is_savings_transaction('Monthly savings goal top-up for the car')
    assert not cat.is_savings_transaction('Sparen voor een nieuwe auto en meer')
    assert cat.is_mapped_category('Vakantie')
    assert not cat.is_mapped_category('Zzz')
    assert cat.is_fixed_category('huur')
    assert cat.is_variable_category('restaurant')


@pytest.mark.parametrize('name', cat.BUDGET_CATEGORIES)
def test_canonical_names_normalize_to_themselves(name):
    assert cat.normalize_category(name) == name
    assert cat.normalize_category(name.upper()) == name
    assert cat.is_mapped_category(name)


def test_daily_frequency_is_a_monthly_equivalent():
    assert cat.convert_to_monthly(3, 'daily') == pytest.approx(3 * 365 / 12)


def test_budget_mappings_accept_legacy_strings_and_skip_junk():
    mappings = cat.normalize_budget_mappings({'groceries': 'cat-7', 'food': ['cat-1', 2], 'vacation': None})

    assert mappings == {'groceries': ['cat-7'], 'food': ['cat-1', '2'], 'vacation': []}
    assert cat.normalize_budget_mappings(['not', 'a', 'mapping']) == {}
    assert cat.normalize_budget_mappings(None) == {}


def test_unmapped_budget_categories_lists_empty_ones():
    unmapped = cat.unmapped_budget_categories({'groceries': ['cat-7'], 'food': []})

    assert 'groceries' not in unmapped
    assert 'food' in unmapped
    assert len(unmapped) == len(cat.BUDGET_CATEGORIES) - 1


def test_mapping_lookup_ignores_non_budget_targets():
    lookup = cat.mapping_lookup({'groceries': ['Cat-7', 'Markt'], 'snacks': ['cat-9']})

    assert lookup == {'cat-7': 'groceries', 'markt': 'groceries'}
