import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_books_collection
from main import app


@pytest.fixture
def collection():
    client = mongomock.MongoClient()
    yield client["bookLibrary"]["books"]
    client.close()


@pytest.fixture
def client(collection):
    app.dependency_overrides[get_books_collection] = lambda: collection
    # no context manager: the lifespan would try to reach a real MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()
