from datetime import date

import pytest

from finance_tracker.budget import (
    calculate_budget_breakdown,
    calculate_budget_targets,
    calculate_category_budgets,
    monthly_income,
    transactions_frame,
)
from finance_tracker.errors import SnapshotError
from finance_tracker.models import IncomeSource, RecurringExpense, SavingsGoal, Transaction

MONTH_END = date(2024, 3, 31)


def _tx(description, amount, category, on=date(2024, 3, 10), **kwargs):
    kwargs.setdefault('type', 'expense' if amount < 0 else 'income')
    return Transaction(
        id=kwargs.pop('id', description),
        description=description,
        amount=amount,
        category=category,
        account_id='acc-1',
        date=on,
        **kwargs,
    )


@pytest.mark.parametrize('income', [0, 1, 1234.56, 3000, 98765.43])
def test_default_targets_sum_to_income(income):
    targets = calculate_budget_targets(income)
    assert sum(targets.values()) == pytest.approx(income)


def test_custom_percentages_require_every_bucket():
    with pytest.raises(SnapshotError):
        calculate_budget_targets(1000, {'needs': 0.6, 'wants': 0.4})


def test_groceries_count_as_wants():
    breakdown = calculate_budget_breakdown(
        3000, [], [_tx('Albert Heijn', -200, 'groceries')], [], MONTH_END,
    )

    assert breakdown.wants.spent == 200
    assert breakdown.needs.spent == 0
    assert breakdown.wants.budgeted == 900
    assert breakdown.month == '2024-03'


def test_configured_expense_not_added_on_top_of_actual_payment():
    rent = RecurringExpense(id='rent', name='Rent', amount=1000, frequency='monthly', category='housing')
    breakdown = calculate_budget_breakdown(
        3000, [rent], [_tx('Rent payment', -1000, 'housing')], [], MONTH_END,
    )

    assert breakdown.needs.spent == 1000
    assert [item.source for item in breakdown.needs.items] == ['transaction']


def test_configured_expense_counts_when_not_yet_paid():
    insurance = RecurringExpense(id='ins', name='Zorgverzekering', amount=1440, frequency='yearly', category='insurance')
    breakdown = calculate_budget_breakdown(3000, [insurance], [], [], MONTH_END)

    assert breakdown.needs.spent == pytest.approx(120)
    assert breakdown.needs.items[0].source == 'configured'


def test_grocery_named_expense_goes_to_wants_despite_category():
    expense = RecurringExpense(id='g', name='Boodschappen', amount=300, category='housing')
    breakdown = calculate_budget_breakdown(3000, [expense], [], [], MONTH_END)

    assert breakdown.wants.spent == 300
    assert breakdown.needs.spent == 0


def test_spent_only_counts_expenses_of_the_target_month_once():
    transactions = [
        _tx('Huur', -900, 'huur'),
        _tx('Cinema', -25, 'entertainment'),
        _tx('Old cinema', -40, 'entertainment', on=date(2024, 2, 29)),
        _tx('Salary', 3000, 'income'),
        _tx('Move to savings', -100, 'transfer', type='transfer'),
    ]
    breakdown = calculate_budget_breakdown(3000, [], transactions, [], MONTH_END)

    assert breakdown.needs.spent == 900
    assert breakdown.wants.spent == 25
    assert breakdown.savings.spent == 0
    total = sum(bucket.spent for bucket in breakdown.buckets.values())
    assert total == 925


def test_zero_income_gives_zero_budgets_and_zero_percent_used():
    breakdown = calculate_budget_breakdown(0, [], [_tx('Snack', -5, 'food')], [], MONTH_END)

    assert all(bucket.budgeted == 0 for bucket in breakdown.buckets.values())
    assert breakdown.wants.percent_used == 0
    assert breakdown.wants.remaining == -5


def test_negative_income_is_rejected():
    with pytest.raises(SnapshotError):
        calculate_budget_breakdown(-1, [], [], [], MONTH_END)


def test_goal_contributions_fill_the_savings_bucket():
    goal = SavingsGoal(id='goal-1', name='Holiday', target_amount=2000)
    transactions = [
        _tx('Sparen: Holiday', -150, 'transfer', type='transfer', savings_goal_id='goal-1', transfer_id='t1'),
        _tx('Sparen: Holiday', 150, 'transfer', type='transfer', savings_goal_id='goal-1', transfer_id='t1', id='in'),
    ]
    breakdown = calculate_budget_breakdown(3000, [], transactions, [goal], MONTH_END)

    assert breakdown.savings.spent == 150
    assert breakdown.savings.items[0].name == 'Holiday'
    assert breakdown.savings.items[0].source == 'goal'


def test_breakdown_to_dict_shape():
    payload = calculate_budget_breakdown(1000, [], [], [], MONTH_END).to_dict()

    assert set(payload) == {'needs', 'wants', 'savings', 'totalIncome', 'month'}
    assert payload['needs']['remaining'] == 500
    assert payload['needs']['percentUsed'] == 0


def test_monthly_income_uses_monthly_equivalents_and_averages_recurring():
    sources = [IncomeSource(id='bonus', name='Bonus', amount=1200, frequency='yearly')]
    transactions = [
        _tx('Salary', 2900, 'income', on=date(2024, 1, 25), is_recurring=True, recurring_type='monthly', id='s1'),
        _tx('Salary', 3100, 'income', on=date(2024, 2, 25), is_recurring=True, recurring_type='monthly', id='s2'),
        _tx('Gift', 50, 'income'),
    ]

    assert monthly_income(sources, transactions, MONTH_END) == pytest.approx(100 + 3000)


def test_inactive_income_source_is_ignored():
    sources = [IncomeSource(id='old', name='Old job', amount=2000, is_active=False)]
    assert monthly_income(sources, [], MONTH_END) == 0


def test_transactions_frame_columns_and_dtypes():
    df = transactions_frame([_tx('Coffee', -3.5, 'food')])

    assert list(df.columns)[:3] == ['id', 'Description', 'Amount']
    assert str(df['Transaction Date'].dtype).startswith('datetime64')
    assert transactions_frame([]).empty


def test_category_budget_table_prefers_configured_fixed_costs():
    rent = RecurringExpense(id='rent', name='Rent', amount=950, category='housing')
    table = calculate_category_budgets(3000, [rent], [_tx('Jumbo', -80, 'boodschappen')], MONTH_END)

    assert len(table) == 8
    housing = table.set_index('Category').loc['housing']
    assert housing['Budgeted'] == 950
    assert housing['Spent'] == 950
    assert housing['Type'] == 'fixed'
    groceries = table.set_index('Category').loc['groceries']
    assert groceries['Spent'] == 80


def test_yearly_recurring_income_only_counts_in_its_own_month():
    bonus = _tx('Bonus', 1200, 'income', on=date(2023, 3, 20), is_recurring=True, recurring_type='yearly')

    assert monthly_income([], [bonus], date(2024, 3, 31)) == 1200
    assert monthly_income([], [bonus], date(2024, 4, 30)) == 0


def test_category_budget_table_keeps_the_food_category():
    table = calculate_category_budgets(3000, [], [_tx('Pizza', -40, 'food')], MONTH_END)

    food = table.set_index('Category').loc['food']
    assert food['Spent'] == 40
    assert food['Type'] == 'variable'
    assert table.set_index('Category').loc['shopping']['Spent'] == 0
