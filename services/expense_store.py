"""In-memory store owning the ordered collection of expenses."""
import logging
import time
from datetime import date
from typing import Iterable, List, Optional, Union
from models.expense import Expense

logger = logging.getLogger(__name__)

ID_STRATEGIES = ("sequential", "timestamp")


class DuplicateExpenseIdError(ValueError):
    """Raised when an expense with an already stored id is appended."""


def sample_expenses() -> List[Expense]:
    """The two fixed records a fresh store can be seeded with."""
    return [
        Expense(id=1, amount=50.00, description="Groceries for the week", category="Food", date=date(2025, 11, 28)),
        Expense(id=2, amount=15.75, description="Monthly streaming subscription", category="Entertainment", date=date(2025, 12, 1)),
    ]


class ExpenseStore:
    """
    Ordered, append-only collection of expenses.

    Records are never updated or removed. Ids are issued by `next_id()`
    either as integers (max existing + 1) or as millisecond timestamp strings.
    """

    def __init__(self, id_strategy: str = "sequential", seed: Optional[Iterable[Expense]] = None):
        if id_strategy not in ID_STRATEGIES:
            raise ValueError(f"Unknown id strategy '{id_strategy}'. Allowed: {', '.join(ID_STRATEGIES)}")
        self.id_strategy = id_strategy
        self._expenses: List[Expense] = []
        self._ids = set()
        self._last_timestamp = 0
        for expense in seed or []:
            self.append(expense)
        logger.info(f"Expense store ready with {len(self)} records (id strategy: {id_strategy}).")

    def __len__(self) -> int:
        return len(self._expenses)

    def all(self) -> List[Expense]:
        return list(self._expenses)

    def next_id(self) -> Union[int, str]:
        if self.id_strategy == "timestamp":
            return self._next_timestamp_id()
        int_ids = [e.id for e in self._expenses if isinstance(e.id, int)]
        return max(int_ids) + 1 if int_ids else 1

    def _next_timestamp_id(self) -> str:
        # Clock may not have advanced since the last id.
        now = time.time_ns() // 1_000_000
        if now <= self._last_timestamp:
            now = self._last_timestamp + 1
        self._last_timestamp = now
        return str(now)

    def append(self, expense: Expense) -> Expense:
        if expense.id in self._ids:
            raise DuplicateExpenseIdError(f"Expense id {expense.id!r} already exists.")
        self._expenses.append(expense)
        self._ids.add(expense.id)
        logger.debug(f"Stored expense {expense.id!r}. Collection size: {len(self._expenses)}")
        return expense
