"""Pydantic model for Expense data"""
from pydantic import BaseModel
from datetime import date
from typing import Union

DEFAULT_CATEGORY = "Uncategorized"

class Expense(BaseModel):
    """
    Represents a single expense record held by the store.
    The id is assigned by the store, never by the client.
    """
    id: Union[int, str]
    amount: float
    description: str
    category: str = DEFAULT_CATEGORY
    date: date
