"""Service layer for handling expense-related logic."""
import logging
import math
import re
import json # Import json for pretty printing
from typing import List, Dict, Any, Optional
from models.expense import Expense, DEFAULT_CATEGORY
from services.expense_store import ExpenseStore
from datetime import date, datetime

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ['amount', 'description']
STRICT_REQUIRED_FIELDS = ['amount', 'description', 'category', 'date']

# Plain decimal or exponent notation, no whitespace, underscores or nan/inf words
AMOUNT_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class ExpenseValidationError(ValueError):
    """A candidate expense was rejected. `missing` lists absent required fields."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.missing = missing or []

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.missing:
            body["missing"] = self.missing
        return body


# --- Validation Helpers ---

def _parse_amount(value: Any) -> float:
    """Parses the amount as a finite, positive float."""
    # bool is an int subclass, JSON true/false is not an amount
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ExpenseValidationError("Invalid amount. Must be a positive number.")
    if isinstance(value, str) and not AMOUNT_PATTERN.fullmatch(value):
        raise ExpenseValidationError("Invalid amount. Must be a positive number.")
    try:
        amount = float(value)
    except (ValueError, TypeError, OverflowError):
        raise ExpenseValidationError("Invalid amount. Must be a positive number.")
    if not math.isfinite(amount) or amount <= 0:
        raise ExpenseValidationError("Invalid amount. Must be a positive number.")
    return amount

def _parse_date(value: Any) -> date:
    if isinstance(value, str) and DATE_PATTERN.fullmatch(value):
        try:
            return datetime.strptime(value, '%Y-%m-%d').date()
        except ValueError:
            pass
    raise ExpenseValidationError("Invalid date. Must be in YYYY-MM-DD format.")

def validate_expense_payload(payload: Any, require_all_fields: bool = False, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Validates a candidate expense and fills in defaults.
    Returns the cleaned fields (without id). Raises ExpenseValidationError.
    Anything that is not a mapping is treated as an empty record.
    """
    if not isinstance(payload, dict):
        logger.debug(f"Payload of type {type(payload).__name__} treated as an empty record.")
        payload = {}

    # 1. Required fields (null counts as missing)
    required = STRICT_REQUIRED_FIELDS if require_all_fields else REQUIRED_FIELDS
    missing = [field for field in required if payload.get(field) is None]
    if missing:
        raise ExpenseValidationError("Missing required fields", missing=missing)

    # 2. Amount
    amount = _parse_amount(payload['amount'])

    # 3. Description
    description = payload['description']
    if not isinstance(description, str) or not description.strip():
        raise ExpenseValidationError("Invalid description. Must be non-empty text.")

    # 4. Category, blank falls back to the default
    category = payload.get('category')
    if category is not None and not isinstance(category, str):
        raise ExpenseValidationError("Invalid category. Must be text.")
    if category is None or not category.strip():
        category = DEFAULT_CATEGORY

    # 5. Date
    date_input = payload.get('date')
    expense_date = _parse_date(date_input) if date_input is not None else (today or date.today())

    return {
        "amount": amount,
        "description": description,
        "category": category,
        "date": expense_date,
    }


# --- Store Operations (Depend on store passed from route) ---

def get_all_expenses(store: ExpenseStore, newest_first: bool = False) -> List[Expense]:
    """Returns every stored expense in insertion order, or reversed if newest_first."""
    expenses = store.all()
    if newest_first:
        expenses.reverse()
    logger.info(f"Fetched {len(expenses)} expenses ({'newest' if newest_first else 'oldest'} first).")
    return expenses

def add_expense(
    store: ExpenseStore,
    payload: Any,
    require_all_fields: bool = False,
    today: Optional[date] = None
) -> Expense:
    """Validates the payload, assigns the next id and appends the expense to the store."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Processing candidate expense:\n{json.dumps(payload, indent=2, default=str)}")
    try:
        fields = validate_expense_payload(payload, require_all_fields=require_all_fields, today=today)
    except ExpenseValidationError as e:
        logger.warning(f"Rejected expense: {e.message} {e.missing or ''}".rstrip())
        raise

    expense = Expense(id=store.next_id(), **fields)
    store.append(expense)
    logger.info(f"Added expense {expense.id!r}: {expense.description[:30]} ({expense.amount:.2f}, {expense.category}).")
    return expense
