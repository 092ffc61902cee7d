"""
MongoDB connection handling.

One Store is created when the application starts and closed when it stops.
Request handlers get the books collection through get_books_collection.
"""
import logging

from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection

import config

logger = logging.getLogger(__name__)

INDEXES = [
    [("title", ASCENDING)],
    [("author", ASCENDING)],
    [("genre", ASCENDING)],
    [("dateAdded", DESCENDING)],
]


class Store:
    def __init__(self, client: MongoClient, database_name: str = config.DATABASE_NAME):
        self.client = client
        self.db = client[database_name]
        self.books: Collection = self.db[config.COLLECTION_NAME]
        self._closed = False

    def create_indexes(self) -> None:
        for keys in INDEXES:
            self.books.create_index(keys)

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        if self._closed:
            return
        self.client.close()
        self._closed = True
        logger.info("MongoDB connection closed")


def connect(uri: str = config.MONGODB_URI, database_name: str = config.DATABASE_NAME) -> Store:
    client = MongoClient(uri)
    store = Store(client, database_name)
    try:
        store.create_indexes()
    except Exception:
        client.close()
        raise
    logger.info(f"Connected to MongoDB, database '{database_name}'")
    return store


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_books_collection(request: Request) -> Collection:
    return get_store(request).books
