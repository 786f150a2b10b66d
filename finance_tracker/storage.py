"""JSON document storage for accounts, transactions and configuration.

Three documents live in the data directory:

* ``financial-data.json`` – accounts, transactions and categories
* ``financial-config.json`` – income sources, recurring expenses, settings, budget
  category mappings and category rules
* ``savings-goals.json`` – savings goals

Every write rewrites the whole document.  Concurrent writers are not
serialized, so the last write wins.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from .config import (
    FINANCIAL_CONFIG_FILE,
    FINANCIAL_DATA_FILE,
    SAVINGS_GOALS_FILE,
    ensure_data_directories,
    get_data_dir,
)
from .categories import BUDGET_CATEGORIES, normalize_budget_mappings, unmapped_budget_categories
from .category_rules import CategoryRule, auto_categorize, rules_from_config
from .errors import NotFoundError, SnapshotError, StorageError
from .models import (
    Account,
    Category,
    FinanceSnapshot,
    IncomeSource,
    RecurringExpense,
    SavingsGoal,
    Transaction,
)
from .savings import build_goal_spending, build_goal_transfers, goal_needs_new_transfers

logger = logging.getLogger(__name__)

Record = TypeVar('Record', Account, Transaction, Category, IncomeSource, RecurringExpense, SavingsGoal)
Payload = Union[Mapping[str, Any], Any]


def new_id(prefix: str) -> str:
    """Generate an id like ``tx-1718000000000-a1b2c3d4e``."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_dict(payload: Payload) -> Dict[str, Any]:
    if hasattr(payload, 'to_dict'):
        return payload.to_dict()
    if not isinstance(payload, Mapping):
        raise SnapshotError(f"expected an object, got {type(payload).__name__}")
    return dict(payload)


class FinanceStore:
    """Reads and writes the finance JSON documents."""

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            data_dir: Optional directory for the JSON documents.
                      Defaults to the configured data directory.
        """
        self.data_dir = Path(data_dir) if data_dir else get_data_dir()
        ensure_data_directories(self.data_dir)

    @property
    def data_path(self) -> Path:
        return self.data_dir / FINANCIAL_DATA_FILE

    @property
    def config_path(self) -> Path:
        return self.data_dir / FINANCIAL_CONFIG_FILE

    @property
    def goals_path(self) -> Path:
        return self.data_dir / SAVINGS_GOALS_FILE

    # ------------------------------------------------------------------
    # Raw documents
    # ------------------------------------------------------------------
    def _read(self, path: Path, default: Callable[[], Dict[str, Any]]) -> Any:
        if not path.exists():
            return default()
        try:
            with path.open('r', encoding='utf-8') as handle:
                return json.load(handle)
        except json.JSONDecodeError as e:
            logger.error("Corrupt JSON document %s: %s", path, e)
            raise StorageError(f"Could not parse {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def _write(self, path: Path, payload: Dict[str, Any]) -> None:
        payload['lastUpdated'] = _now()
        try:
            with path.open('w', encoding='utf-8') as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
        except OSError as e:
            raise StorageError(f"Failed to save {path}: {e}") from e
        logger.info("Saved %s", path.name)

    def load_data(self) -> Dict[str, Any]:
        data = self._read(self.data_path, dict)
        if not isinstance(data, dict):
            raise StorageError(f"{self.data_path} must contain a JSON object")
        for key in ('accounts', 'transactions', 'categories'):
            if not isinstance(data.get(key), list):
                data[key] = []
        return data

    def save_data(self, data: Dict[str, Any]) -> None:
        self._write(self.data_path, data)

    def load_config(self) -> Dict[str, Any]:
        config = self._read(self.config_path, dict)
        if not isinstance(config, dict):
            raise StorageError(f"{self.config_path} must contain a JSON object")
        if 'incomeSources' not in config and isinstance(config.get('income'), list):
            logger.warning("%s uses the legacy 'income' key", self.config_path.name)
            config['incomeSources'] = config.pop('income')
        for key in ('incomeSources', 'recurringExpenses'):
            if not isinstance(config.get(key), list):
                config[key] = []
        if not isinstance(config.get('settings'), dict):
            config['settings'] = {}
        return config

    def save_config(self, config: Dict[str, Any]) -> None:
        self._write(self.config_path, config)

    def load_goals_document(self) -> Dict[str, Any]:
        document = self._read(self.goals_path, dict)
        if isinstance(document, list):
            logger.warning("%s holds a bare list of goals", self.goals_path.name)
            document = {'goals': document}
        if not isinstance(document, dict):
            raise StorageError(f"{self.goals_path} must contain a JSON object")
        if not isinstance(document.get('goals'), list):
            document['goals'] = []
        return document

    def save_goals_document(self, document: Dict[str, Any]) -> None:
        self._write(self.goals_path, document)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def load_snapshot(self) -> FinanceSnapshot:
        """Load every document into one immutable snapshot.

        Raises:
            StorageError: If a document cannot be read or parsed
            SnapshotError: If a record is missing a required field
        """
        data = self.load_data()
        config = self.load_config()
        goals = self.load_goals_document()
        settings = config['settings']

        percentages = settings.get('budgetPercentages')
        months = settings.get('projectionMonths')
        try:
            projection_months = int(months) if months not in (None, '') else None
        except (TypeError, ValueError) as e:
            raise SnapshotError(f"settings: projectionMonths must be an integer, got {months!r}") from e

        return FinanceSnapshot(
            accounts=tuple(Account.from_dict(item) for item in data['accounts']),
            transactions=tuple(Transaction.from_dict(item) for item in data['transactions']),
            categories=tuple(Category.from_dict(item) for item in data['categories']),
            income_sources=tuple(IncomeSource.from_dict(item) for item in config['incomeSources']),
            recurring_expenses=tuple(RecurringExpense.from_dict(item) for item in config['recurringExpenses']),
            savings_goals=tuple(SavingsGoal.from_dict(item) for item in goals['goals']),
            budget_percentages=dict(percentages) if isinstance(percentages, dict) else None,
            projection_months=projection_months,
            budget_mappings=normalize_budget_mappings(config.get('budgetCategoryMappings')),
        )

    # ------------------------------------------------------------------
    # Generic record helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _find(items: List[Dict[str, Any]], record_id: str, label: str) -> int:
        for index, item in enumerate(items):
            if str(item.get('id')) == str(record_id):
                return index
        raise NotFoundError(f"{label} '{record_id}' not found")

    @staticmethod
    def _create(items: List[Dict[str, Any]], cls: Type[Record], payload: Payload, prefix: str) -> Record:
        raw = _as_dict(payload)
        if not raw.get('id'):
            raw['id'] = new_id(prefix)
        record = cls.from_dict(raw)
        items.append(record.to_dict())
        return record

    def _replace(
        self,
        items: List[Dict[str, Any]],
        cls: Type[Record],
        record_id: str,
        updates: Mapping[str, Any],
        label: str,
    ) -> Record:
        index = self._find(items, record_id, label)
        merged = {**items[index], **dict(updates), 'id': items[index]['id']}
        record = cls.from_dict(merged)
        items[index] = record.to_dict()
        return record

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def add_account(self, payload: Payload) -> Account:
        data = self.load_data()
        account = self._create(data['accounts'], Account, payload, 'acc')
        self.save_data(data)
        return account

    def update_account(self, account_id: str, updates: Mapping[str, Any]) -> Account:
        data = self.load_data()
        account = self._replace(data['accounts'], Account, account_id, updates, 'account')
        self.save_data(data)
        return account

    def delete_account(self, account_id: str) -> None:
        data = self.load_data()
        index = self._find(data['accounts'], account_id, 'account')
        del data['accounts'][index]
        self.save_data(data)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def _check_account(self, data: Dict[str, Any], account_id: Any) -> None:
        known = {str(account.get('id')) for account in data['accounts']}
        if str(account_id) not in known:
            raise SnapshotError(f"transaction: unknown account '{account_id}'")

    @staticmethod
    def _sort_transactions(data: Dict[str, Any]) -> None:
        data['transactions'].sort(key=lambda t: str(t.get('date', '')), reverse=True)

    def add_transaction(self, payload: Payload) -> Transaction:
        """Validate and store a transaction; newest transactions come first."""
        data = self.load_data()
        raw = _as_dict(payload)
        self._check_account(data, raw.get('accountId'))
        transaction = self._create(data['transactions'], Transaction, raw, 'tx')
        self._sort_transactions(data)
        self.save_data(data)
        return transaction

    def update_transaction(self, transaction_id: str, updates: Mapping[str, Any]) -> Transaction:
        data = self.load_data()
        if 'accountId' in updates:
            self._check_account(data, updates['accountId'])
        transaction = self._replace(data['transactions'], Transaction, transaction_id, updates, 'transaction')
        self._sort_transactions(data)
        self.save_data(data)
        return transaction

    def delete_transaction(self, transaction_id: str) -> None:
        data = self.load_data()
        index = self._find(data['transactions'], transaction_id, 'transaction')
        del data['transactions'][index]
        self.save_data(data)

    def auto_categorize_transactions(self, dry_run: bool = False) -> Dict[str, Any]:
        """Categorize every uncategorized transaction from its description.

        User rules from the configuration are tried before the built-in ones.
        With ``dry_run`` the suggestions are returned but nothing is written.

        Returns:
            Dict with 'categorizedCount', 'skippedCount', 'dryRun' and a
            'results' list of per-transaction changes
        """
        data = self.load_data()
        user_rules = rules_from_config(self.load_config().get('categoryRules'))
        transactions = [Transaction.from_dict(item) for item in data['transactions']]
        suggestions = auto_categorize(transactions, user_rules)

        results = []
        by_id = {tx.id: suggestion for tx, suggestion in suggestions}
        for item in data['transactions']:
            suggestion = by_id.get(str(item.get('id')))
            if suggestion is None:
                continue
            results.append({
                'id': item.get('id'),
                'description': item.get('description'),
                'oldCategory': item.get('category') or 'uncategorized',
                'newCategory': suggestion.category,
                'confidence': suggestion.confidence,
                'amount': item.get('amount'),
            })
            if not dry_run:
                item.update({
                    'category': suggestion.category,
                    'autoCategorizationConfidence': suggestion.confidence,
                    'categorizationReason': suggestion.reason,
                    'manuallyReviewed': False,
                })

        if results and not dry_run:
            self.save_data(data)
            logger.info("Auto-categorized %d transactions", len(results))
        return {
            'categorizedCount': len(results),
            'skippedCount': len(transactions) - len(results),
            'dryRun': dry_run,
            'results': results,
        }

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def add_category(self, payload: Payload) -> Category:
        data = self.load_data()
        category = self._create(data['categories'], Category, payload, 'cat')
        self.save_data(data)
        return category

    def update_category(self, category_id: str, updates: Mapping[str, Any]) -> Category:
        data = self.load_data()
        category = self._replace(data['categories'], Category, category_id, updates, 'category')
        self.save_data(data)
        return category

    def delete_category(self, category_id: str) -> None:
        data = self.load_data()
        index = self._find(data['categories'], category_id, 'category')
        del data['categories'][index]
        self.save_data(data)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def add_income_source(self, payload: Payload) -> IncomeSource:
        config = self.load_config()
        source = self._create(config['incomeSources'], IncomeSource, payload, 'income')
        self.save_config(config)
        return source

    def update_income_source(self, source_id: str, updates: Mapping[str, Any]) -> IncomeSource:
        config = self.load_config()
        source = self._replace(config['incomeSources'], IncomeSource, source_id, updates, 'income source')
        self.save_config(config)
        return source

    def delete_income_source(self, source_id: str) -> None:
        config = self.load_config()
        index = self._find(config['incomeSources'], source_id, 'income source')
        del config['incomeSources'][index]
        self.save_config(config)

    def add_recurring_expense(self, payload: Payload) -> RecurringExpense:
        config = self.load_config()
        expense = self._create(config['recurringExpenses'], RecurringExpense, payload, 'expense')
        self.save_config(config)
        return expense

    def update_recurring_expense(self, expense_id: str, updates: Mapping[str, Any]) -> RecurringExpense:
        config = self.load_config()
        expense = self._replace(config['recurringExpenses'], RecurringExpense, expense_id, updates, 'recurring expense')
        self.save_config(config)
        return expense

    def delete_recurring_expense(self, expense_id: str) -> None:
        config = self.load_config()
        index = self._find(config['recurringExpenses'], expense_id, 'recurring expense')
        del config['recurringExpenses'][index]
        self.save_config(config)

    def update_settings(self, updates: Mapping[str, Any]) -> Dict[str, Any]:
        config = self.load_config()
        config['settings'].update(dict(updates))
        self.save_config(config)
        return dict(config['settings'])

    def budget_mappings(self) -> Dict[str, Any]:
        """Return the budget category mappings and the budget categories without any."""
        mappings = normalize_budget_mappings(self.load_config().get('budgetCategoryMappings'))
        return {'mappings': mappings, 'unmappedCategories': unmapped_budget_categories(mappings)}

    def add_budget_mapping(self, budget_category: str, category_id: str) -> Dict[str, List[str]]:
        """Map a transaction category id (or name) onto a budget category.

        Raises:
            SnapshotError: If ``budget_category`` is not a budget category
        """
        if budget_category not in BUDGET_CATEGORIES:
            raise SnapshotError(f"budget mapping: unknown budget category '{budget_category}'")
        if not str(category_id or '').strip():
            raise SnapshotError("budget mapping: needs a category id")
        config = self.load_config()
        mappings = normalize_budget_mappings(config.get('budgetCategoryMappings'))
        targets = mappings.setdefault(budget_category, [])
        if category_id not in targets:
            targets.append(category_id)
        config['budgetCategoryMappings'] = mappings
        self.save_config(config)
        return mappings

    def remove_budget_mapping(self, budget_category: str, category_id: str) -> bool:
        """Remove one mapped category; returns False when it was not mapped."""
        config = self.load_config()
        mappings = normalize_budget_mappings(config.get('budgetCategoryMappings'))
        targets = mappings.get(budget_category, [])
        if category_id not in targets:
            return False
        targets.remove(category_id)
        config['budgetCategoryMappings'] = mappings
        self.save_config(config)
        return True

    def category_rules(self) -> List[CategoryRule]:
        return rules_from_config(self.load_config().get('categoryRules'))

    def add_category_rule(self, keyword: str, category: str, whole_word: bool = False) -> CategoryRule:
        """Add a user keyword rule; user rules are tried before the built-in ones."""
        rule = CategoryRule.from_dict({'keyword': keyword, 'category': category, 'wholeWord': whole_word})
        config = self.load_config()
        rules = rules_from_config(config.get('categoryRules'))
        rules.append(rule)
        config['categoryRules'] = [r.to_dict() for r in rules]
        self.save_config(config)
        return rule

    def remove_category_rule(self, keyword: str, category: str) -> bool:
        """Remove a rule matching keyword and category.

        Returns:
            True if rule was removed, False if not found
        """
        config = self.load_config()
        rules = rules_from_config(config.get('categoryRules'))
        kept = [r for r in rules if not (r.keyword == keyword and r.category == category)]
        if len(kept) == len(rules):
            return False
        config['categoryRules'] = [r.to_dict() for r in kept]
        self.save_config(config)
        return True

    # ------------------------------------------------------------------
    # Savings goals
    # ------------------------------------------------------------------
    def _replace_goal_transfers(self, goal: SavingsGoal, on: Optional[date] = None) -> None:
        data = self.load_data()
        data['transactions'] = [
            t for t in data['transactions']
            if not (t.get('savingsGoalId') == goal.id and t.get('type') == 'transfer')
        ]
        for leg in build_goal_transfers(goal, on=on):
            data['transactions'].append(leg.to_dict())
        self._sort_transactions(data)
        self.save_data(data)
        logger.info("Regenerated transfers for savings goal %s", goal.id)

    def _has_goal_transfers(self, goal_id: str) -> bool:
        return any(
            t.get('savingsGoalId') == goal_id and t.get('type') == 'transfer'
            for t in self.load_data()['transactions']
        )

    def add_goal(self, payload: Payload, on: Optional[date] = None) -> SavingsGoal:
        """Store a goal and create its funding transfer when it has one."""
        document = self.load_goals_document()
        raw = _as_dict(payload)
        raw.setdefault('createdAt', _now())
        raw['updatedAt'] = _now()
        goal = self._create(document['goals'], SavingsGoal, raw, 'goal')
        self.save_goals_document(document)
        if goal_needs_new_transfers(None, goal):
            self._replace_goal_transfers(goal, on=on)
        return goal

    def update_goal(self, goal_id: str, updates: Mapping[str, Any], on: Optional[date] = None) -> SavingsGoal:
        """Update a goal; its transfer pair is rebuilt when the funding changed."""
        document = self.load_goals_document()
        index = self._find(document['goals'], goal_id, 'savings goal')
        old = SavingsGoal.from_dict(document['goals'][index])
        goal = self._replace(document['goals'], SavingsGoal, goal_id, {**dict(updates), 'updatedAt': _now()}, 'savings goal')
        self.save_goals_document(document)
        if goal_needs_new_transfers(old, goal) or (
            goal_needs_new_transfers(None, goal) and not self._has_goal_transfers(goal.id)
        ):
            self._replace_goal_transfers(goal, on=on)
        return goal

    def delete_goal(self, goal_id: str) -> None:
        """Delete a goal together with its transfer transactions."""
        document = self.load_goals_document()
        index = self._find(document['goals'], goal_id, 'savings goal')
        del document['goals'][index]
        self.save_goals_document(document)

        data = self.load_data()
        kept = [
            t for t in data['transactions']
            if not (t.get('savingsGoalId') == goal_id and t.get('type') == 'transfer')
        ]
        if len(kept) != len(data['transactions']):
            data['transactions'] = kept
            self.save_data(data)

    def spend_goal(self, goal_id: str, on: Optional[date] = None) -> Tuple[SavingsGoal, Transaction]:
        """Record buying what a goal saved for.

        A ``Gekocht: <name>`` expense for the target amount is booked on the
        goal's savings account (or the first savings account), and the goal
        is stamped with the spend date and the transaction id.

        Raises:
            NotFoundError: If the goal does not exist
            SnapshotError: If the goal was already spent or no savings account exists
        """
        document = self.load_goals_document()
        index = self._find(document['goals'], goal_id, 'savings goal')
        goal = SavingsGoal.from_dict(document['goals'][index])

        data = self.load_data()
        account_id = goal.to_account_id
        if not account_id:
            account_id = next(
                (str(a.get('id')) for a in data['accounts'] if a.get('type') == 'savings'),
                None,
            )
        if not account_id:
            raise SnapshotError("No savings account found")
        self._check_account(data, account_id)

        when = on or date.today()
        transaction = build_goal_spending(goal, account_id, on=when, transaction_id=new_id('tx'))
        data['transactions'].append(transaction.to_dict())
        self._sort_transactions(data)
        self.save_data(data)

        updates = {
            'spentDate': when.isoformat(),
            'spentTransactionId': transaction.id,
            'updatedAt': _now(),
        }
        if not document['goals'][index].get('completedDate'):
            updates['completedDate'] = when.isoformat()
        goal = self._replace(document['goals'], SavingsGoal, goal_id, updates, 'savings goal')
        self.save_goals_document(document)
        logger.info("Savings goal %s spent as %s", goal_id, transaction.id)
        return goal, transaction
