import math
from datetime import date

import pytest

from finance_tracker.errors import SnapshotError
from finance_tracker.models import SavingsGoal, Transaction
from finance_tracker.savings import (
    build_goal_spending,
    build_goal_transfers,
    contributions_in_month,
    goal_current_amount,
    goal_needs_new_transfers,
    goal_progress,
    months_to_target,
    with_current_amounts,
)


def _goal(**kwargs):
    values = dict(
        id='goal-1', name='Holiday', target_amount=1000, monthly_contribution=200,
        from_account_id='checking', to_account_id='savings',
    )
    values.update(kwargs)
    return SavingsGoal(**values)


def test_build_goal_transfers_creates_linked_pair():
    outgoing, incoming = build_goal_transfers(_goal(), on=date(2024, 5, 1), transfer_id='t1')

    assert outgoing.amount == -200
    assert outgoing.account_id == 'checking'
    assert incoming.amount == 200
    assert incoming.account_id == 'savings'
    for leg in (outgoing, incoming):
        assert leg.description == 'Sparen: Holiday'
        assert leg.type == 'transfer'
        assert leg.is_recurring and leg.recurring_type == 'monthly'
        assert leg.transfer_id == 't1'
        assert leg.savings_goal_id == 'goal-1'
    assert outgoing.id != incoming.id


@pytest.mark.parametrize('changes', [{'monthly_contribution': 0}, {'to_account_id': None}])
def test_build_goal_transfers_requires_contribution_and_accounts(changes):
    with pytest.raises(SnapshotError):
        build_goal_transfers(_goal(**changes))


def test_current_amount_counts_each_transfer_once():
    legs = build_goal_transfers(_goal(), on=date(2024, 5, 1), transfer_id='t1')
    manual = Transaction(
        id='m1', description='Extra', amount=50, type='income', category='savings',
        account_id='savings', date=date(2024, 5, 3), savings_goal_id='goal-1',
    )

    assert goal_current_amount(_goal(), legs + [manual]) == 250
    [goal] = with_current_amounts([_goal()], legs)
    assert goal.current_amount == 200


def test_goal_progress_is_capped_and_safe_for_zero_target():
    assert goal_progress(_goal(current_amount=250)) == 25
    assert goal_progress(_goal(current_amount=5000)) == 100
    assert goal_progress(_goal(target_amount=0)) == 0


def test_months_to_target():
    assert months_to_target(_goal(current_amount=100)) == 5
    assert months_to_target(_goal(current_amount=1000)) == 0
    assert months_to_target(_goal(monthly_contribution=0)) == math.inf


def test_contributions_in_month_skips_expenses_other_months_and_inactive_goals():
    legs = build_goal_transfers(_goal(), on=date(2024, 5, 1), transfer_id='t1')
    spent = Transaction(
        id='e1', description='Flight', amount=-300, type='expense', category='vacation',
        account_id='savings', date=date(2024, 5, 20), savings_goal_id='goal-1',
    )
    earlier = build_goal_transfers(_goal(), on=date(2024, 4, 1), transfer_id='t0')

    assert contributions_in_month([_goal()], legs + earlier + [spent], date(2024, 5, 31)) == {'goal-1': 200}
    assert contributions_in_month([_goal(is_active=False)], legs, date(2024, 5, 31)) == {}


def test_goal_needs_new_transfers():
    goal = _goal()

    assert goal_needs_new_transfers(None, goal)
    assert not goal_needs_new_transfers(goal, _goal())
    assert goal_needs_new_transfers(goal, _goal(monthly_contribution=250))
    assert not goal_needs_new_transfers(None, _goal(from_account_id=None))


def test_build_goal_spending_books_the_target_on_the_savings_account():
    goal = _goal(extra={'categoryId': 'cat-vacation'})
    purchase = build_goal_spending(goal, 'savings', on=date(2024, 8, 1), transaction_id='tx-buy')

    assert purchase.id == 'tx-buy'
    assert purchase.description == 'Gekocht: Holiday'
    assert purchase.amount == -1000
    assert purchase.type == 'expense'
    assert purchase.category == 'cat-vacation'
    assert purchase.account_id == 'savings'
    assert purchase.completed
    assert purchase.savings_goal_id == 'goal-1'
    assert purchase.tags == ['spaardoel', 'aankoop', 'Holiday']


def test_build_goal_spending_rejects_a_spent_goal():
    with pytest.raises(SnapshotError, match='already spent'):
        build_goal_spending(_goal(spent_date=date(2024, 8, 1)), 'savings')


def test_spending_does_not_change_the_current_amount():
    legs = build_goal_transfers(_goal(), on=date(2024, 5, 1), transfer_id='t1')
    purchase = build_goal_spending(_goal(), 'savings', on=date(2024, 8, 1))

    assert goal_current_amount(_goal(), legs + [purchase]) == 200
