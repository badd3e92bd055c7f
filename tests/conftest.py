"""Shared test fixtures and configuration."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SEED_SAMPLE_EXPENSES", "true")

from main import create_app
from services.expense_store import ExpenseStore, sample_expenses
from utils.config import Settings


@pytest.fixture
def settings() -> Settings:
    """Return test settings with the rate limiter off."""
    return Settings(rate_limit_enabled=False, log_level="WARNING")


@pytest.fixture
def store() -> ExpenseStore:
    """A store seeded with the two sample expenses."""
    return ExpenseStore(seed=sample_expenses())


@pytest.fixture
def app(settings):
    """A fresh application per test."""
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client with the lifespan run, so the store exists."""
    with TestClient(app) as test_client:
        yield test_client
