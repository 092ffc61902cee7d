import mongomock
from fastapi.testclient import TestClient

import database
import main
from database import Store, connect


def test_connect_creates_indexes(monkeypatch):
    monkeypatch.setattr(database, "MongoClient", mongomock.MongoClient)
    store = connect("mongodb://example:27017", "testLibrary")

    indexes = store.books.index_information()
    for name in ("title_1", "author_1", "genre_1", "dateAdded_-1"):
        assert name in indexes
    assert store.db.name == "testLibrary"
    store.close()


def test_close_is_idempotent():
    store = Store(mongomock.MongoClient())
    store.close()
    store.close()
    assert store._closed


def test_lifespan_opens_and_closes_store(monkeypatch):
    store = Store(mongomock.MongoClient())
    monkeypatch.setattr(main, "connect", lambda: store)

    with TestClient(main.app) as client:
        response = client.get("/api/stats")
        assert response.status_code == 200
        assert main.app.state.store is store
        assert not store._closed

    assert store._closed
