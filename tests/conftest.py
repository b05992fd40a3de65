from datetime import date
from itertools import count

import pytest

from gastos.config import Settings
from gastos.storage import MemoryStorage
from gastos.store import ExpenseStore
from web.app import create_app


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clock():
    ticks = count(1_709_251_200_000)
    return lambda: next(ticks)


@pytest.fixture
def store(storage, clock):
    return ExpenseStore(storage, clock=clock)


@pytest.fixture
def payload():
    return {
        "date": "2024-03-01",
        "amount": "50",
        "description": "súper",
        "type": "Personal",
        "category": "comida",
        "payment_method": "cash",
    }


@pytest.fixture
def app(storage, clock):
    app = create_app(
        storage=storage,
        clock=clock,
        today=lambda: date(2024, 3, 6),
        settings=Settings(),
    )
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
