import pytest
from fastapi.testclient import TestClient

import main
from database import DatasetStore
from tests._support.stubs import StubAssistant, make_dataset


@pytest.fixture
def sales_dataset():
    return make_dataset(
        ["region", "product", "sales", "units"],
        [
            ["North", "A", "10", "1"],
            ["North", "B", "5", "2"],
            ["South", "A", "3", "3"],
            ["North", "A", "2", "4"],
        ],
    )


@pytest.fixture
def store():
    return DatasetStore()


@pytest.fixture
def assistant():
    return StubAssistant(chart_responses=[[{"type": "bar", "x": "region", "y": "sales", "aggregate": "sum"}]])


@pytest.fixture
def client(store, assistant):
    main.app.dependency_overrides[main.get_store] = lambda: store
    main.app.dependency_overrides[main.get_assistant] = lambda: assistant
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
