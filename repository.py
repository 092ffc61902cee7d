import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from errors import NotFound, StoreError
from schemas import Book, Stats
from validation import parse_object_id

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "title": [("title", ASCENDING)],
    "author": [("author", ASCENDING)],
    "year": [("year", DESCENDING)],
    "rating": [("rating", DESCENDING)],
}
DEFAULT_SORT = [("dateAdded", DESCENDING)]

AVERAGE_RATING_PIPELINE = [
    {"$match": {"rating": {"$gt": 0}}},
    {"$group": {"_id": None, "avgRating": {"$avg": "$rating"}}},
]


def build_filter(genre: Optional[str] = None, is_read: Optional[str] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if genre and genre != "all":
        query["genre"] = genre
    if is_read is not None and is_read != "all":
        query["isRead"] = is_read == "true"
    return query


def round_half_up(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def resolve_sort(sort_by: Optional[str]):
    # unknown keys fall back to newest first
    return SORT_OPTIONS.get(sort_by or "", DEFAULT_SORT)


class BookRepository:
    """Book persistence on top of a pymongo collection.

    Ids are checked before the store is touched; driver failures come out as
    StoreError.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    def list_books(self, genre: Optional[str] = None, is_read: Optional[str] = None,
                   sort_by: Optional[str] = None) -> List[Book]:
        query = build_filter(genre, is_read)
        try:
            docs = list(self.collection.find(query).sort(resolve_sort(sort_by)))
        except PyMongoError as e:
            raise StoreError("failed to fetch books", e)
        return [Book.from_document(doc) for doc in docs]

    def get_book(self, book_id: str) -> Book:
        oid = parse_object_id(book_id)
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise StoreError("failed to fetch book", e)
        if not doc:
            raise NotFound(book_id)
        return Book.from_document(doc)

    def create_book(self, data: Dict[str, Any]) -> Book:
        try:
            result = self.collection.insert_one(dict(data))
            doc = self.collection.find_one({"_id": result.inserted_id})
        except PyMongoError as e:
            raise StoreError("failed to create book", e, status_code=400)
        logger.info(f"Created book {result.inserted_id}")
        return Book.from_document(doc)

    def update_book(self, book_id: str, data: Dict[str, Any]) -> Book:
        oid = parse_object_id(book_id)
        try:
            if data:
                doc = self.collection.find_one_and_update(
                    {"_id": oid},
                    {"$set": data},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise StoreError("failed to update book", e, status_code=400)
        if not doc:
            raise NotFound(book_id)
        return Book.from_document(doc)

    def delete_book(self, book_id: str) -> Book:
        oid = parse_object_id(book_id)
        try:
            doc = self.collection.find_one_and_delete({"_id": oid})
        except PyMongoError as e:
            raise StoreError("failed to delete book", e)
        if not doc:
            raise NotFound(book_id)
        logger.info(f"Deleted book {book_id}")
        return Book.from_document(doc)

    def _average_rating(self) -> float:
        result = list(self.collection.aggregate(AVERAGE_RATING_PIPELINE))
        if not result or result[0].get("avgRating") is None:
            return 0
        return round_half_up(result[0]["avgRating"])

    def compute_stats(self) -> Stats:
        """Count books and average the non-zero ratings.

        The four reads run concurrently and are not taken from one snapshot.
        Any single failure fails the whole call.
        """
        with ThreadPoolExecutor(max_workers=4) as pool:
            total = pool.submit(self.collection.count_documents, {})
            read = pool.submit(self.collection.count_documents, {"isRead": True})
            unread = pool.submit(self.collection.count_documents, {"isRead": False})
            average = pool.submit(self._average_rating)
            try:
                return Stats(
                    total=total.result(),
                    read=read.result(),
                    unread=unread.result(),
                    averageRating=average.result(),
                )
            except PyMongoError as e:
                raise StoreError("failed to compute stats", e)
