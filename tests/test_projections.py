from datetime import date

import pytest

from finance_tracker.budget import calculate_budget_breakdown
from finance_tracker.errors import SnapshotError
from finance_tracker.models import Account, IncomeSource, RecurringExpense, SavingsGoal, Transaction
from finance_tracker.projections import (
    RecurringDefinition,
    generate_projections,
    primary_account_id,
    projection_frame,
)
from finance_tracker.savings import build_goal_transfers

START = date(2025, 1, 15)


def _accounts():
    return [
        Account(id='checking', name='Checking', type='checking', starting_balance=1000),
        Account(id='savings', name='Savings', type='savings', starting_balance=500),
    ]


def _config():
    return dict(
        income_sources=[IncomeSource(id='salary', name='Salary', amount=3000, account_id='checking')],
        recurring_expenses=[RecurringExpense(id='rent', name='Rent', amount=1000, account_id='checking')],
    )


def test_projection_is_repeatable():
    accounts = _accounts()
    first = list(generate_projections(12, accounts=accounts, start=START, **_config()))
    second = list(generate_projections(12, accounts=accounts, start=START, **_config()))

    assert len(first) == 12
    assert first == second


@pytest.mark.parametrize('horizon', [0, -5])
def test_non_positive_horizon_yields_nothing(horizon):
    assert list(generate_projections(horizon, accounts=_accounts(), start=START)) == []


@pytest.mark.parametrize('horizon', [True, 'soon', None])
def test_non_integer_horizon_is_rejected(horizon):
    with pytest.raises(SnapshotError):
        generate_projections(horizon, accounts=_accounts(), start=START)


def test_monthly_items_accumulate_on_their_account():
    snapshots = list(generate_projections(3, accounts=_accounts(), start=START, **_config()))

    assert [s.date for s in snapshots] == [date(2025, 2, 1), date(2025, 3, 1), date(2025, 4, 1)]
    assert snapshots[-1].account_balances == {'checking': 7000, 'savings': 500}
    assert snapshots[-1].total_balance == 7500
    assert snapshots[0].income == 3000
    assert snapshots[0].expenses == 1000
    assert snapshots[0].net_change == 2000


def test_yearly_transaction_only_in_its_month():
    tax = Transaction(
        id='tax', description='Road tax', amount=-1200, type='expense', category='transport',
        account_id='checking', date=date(2024, 3, 10), is_recurring=True, recurring_type='yearly',
        completed=False,
    )
    snapshots = {
        s.date: s for s in generate_projections(24, accounts=_accounts(), transactions=[tax], start=START)
    }

    assert snapshots[date(2025, 3, 1)].expenses == 1200
    assert snapshots[date(2025, 4, 1)].expenses == 0
    assert snapshots[date(2026, 3, 1)].expenses == 1200


def test_weekly_income_is_amortized_to_a_monthly_average():
    # Approximation: 52 weeks spread evenly over 12 months, not a calendar simulation
    weekly = IncomeSource(id='tips', name='Tips', amount=100, frequency='weekly', account_id='checking')
    snapshot = next(iter(generate_projections(1, accounts=_accounts(), income_sources=[weekly], start=START)))

    assert snapshot.income == pytest.approx(100 * 52 / 12)


def test_quarterly_expense_every_third_month():
    gym = RecurringExpense(id='gym', name='Gym', amount=90, frequency='quarterly', start_date=date(2025, 1, 1))
    snapshots = list(generate_projections(6, accounts=_accounts(), recurring_expenses=[gym], start=START))

    assert [s.expenses for s in snapshots] == [0, 0, 90, 0, 0, 90]


def test_unknown_frequency_is_treated_as_monthly():
    odd = RecurringExpense(id='odd', name='Odd', amount=10, frequency='fortnightly-ish')
    snapshots = list(generate_projections(2, accounts=_accounts(), recurring_expenses=[odd], start=START))

    assert [s.expenses for s in snapshots] == [10, 10]


def test_configured_item_wins_over_matching_recurring_transaction():
    salary_tx = Transaction(
        id='s1', description='Salary ACME', amount=3000, type='income', category='income',
        account_id='checking', date=date(2025, 1, 1), is_recurring=True, recurring_type='monthly',
    )
    snapshot = next(iter(generate_projections(
        1, accounts=_accounts(), transactions=[salary_tx], start=START, **_config(),
    )))

    assert snapshot.income == 3000


def test_goal_transfers_move_money_without_changing_the_total():
    goal = SavingsGoal(
        id='goal-1', name='Holiday', target_amount=1000, monthly_contribution=200,
        from_account_id='checking', to_account_id='savings',
    )
    legs = build_goal_transfers(goal, on=START, transfer_id='t1')
    snapshots = list(generate_projections(2, accounts=_accounts(), transactions=legs, start=START))

    assert snapshots[-1].account_balances == {'checking': 600, 'savings': 900}
    assert snapshots[-1].total_balance == 1500
    assert snapshots[-1].income == 0
    assert snapshots[-1].expenses == 0


def test_items_without_account_land_on_primary_account():
    income = IncomeSource(id='gift', name='Gift', amount=50)
    snapshot = next(iter(generate_projections(1, accounts=_accounts(), income_sources=[income], start=START)))

    assert snapshot.account_balances['checking'] == 1050


def test_projection_without_accounts_uses_unassigned_balance():
    income = IncomeSource(id='gift', name='Gift', amount=50)
    snapshot = next(iter(generate_projections(1, income_sources=[income], start=START)))

    assert snapshot.account_balances == {'unassigned': 50}


def test_definition_respects_end_date():
    definition = RecurringDefinition(
        name='Lease', amount=-300, frequency='monthly', account_id='checking',
        anchor=date(2025, 1, 1), end=date(2025, 3, 31),
    )

    assert definition.amount_for(date(2024, 12, 1)) == 0
    assert definition.amount_for(date(2025, 3, 1)) == -300
    assert definition.amount_for(date(2025, 4, 1)) == 0


def test_primary_account_prefers_checking():
    accounts = [Account(id='s', name='S', type='savings'), Account(id='c', name='C', type='checking')]

    assert primary_account_id(accounts) == 'c'
    assert primary_account_id(accounts[:1]) == 's'
    assert primary_account_id([]) == 'unassigned'


def test_projection_frame_names_account_columns():
    snapshots = generate_projections(2, accounts=_accounts(), start=START, **_config())
    df = projection_frame(snapshots, {'checking': 'Checking', 'savings': 'Savings'})

    assert list(df.columns) == ['Month', 'Total Balance', 'Income', 'Expenses', 'Net Change', 'Checking', 'Savings']
    assert df['Month'].tolist() == ['2025-02', '2025-03']


def test_biweekly_expense_is_amortized_to_a_monthly_average():
    cleaner = RecurringExpense(id='cleaner', name='Cleaner', amount=100, frequency='biweekly', account_id='checking')
    snapshots = list(generate_projections(2, accounts=_accounts(), recurring_expenses=[cleaner], start=START))

    assert [s.expenses for s in snapshots] == pytest.approx([100 * 26 / 12] * 2)


def test_daily_recurring_transaction_is_amortized_to_a_monthly_average():
    coffee = Transaction(
        id='coffee', description='Coffee', amount=-3, type='expense', category='food',
        account_id='checking', date=date(2024, 12, 1), is_recurring=True, recurring_type='daily',
        completed=False,
    )
    snapshot = next(iter(generate_projections(1, accounts=_accounts(), transactions=[coffee], start=START)))

    assert snapshot.expenses == pytest.approx(3 * 365 / 12)


def test_daily_expense_agrees_between_budget_and_projection():
    coffee = RecurringExpense(id='coffee', name='Coffee', amount=3, frequency='daily', category='food')
    breakdown = calculate_budget_breakdown(3000, [coffee], [], [], date(2025, 2, 28))
    snapshot = next(iter(generate_projections(1, accounts=_accounts(), recurring_expenses=[coffee], start=START)))

    assert breakdown.wants.spent == pytest.approx(91.25)
    assert snapshot.expenses == pytest.approx(breakdown.wants.spent)
