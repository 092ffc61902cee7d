"""
Database Schemas for the Book Tracker

Each Pydantic model describes a document shape. Book mirrors a document of the
"books" MongoDB collection; the other models shape API responses.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="ObjectId as string")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Author name")
    genre: str = Field(..., description="One of the fixed genre labels")
    year: Optional[int] = Field(None, description="Publication year")
    description: Optional[str] = None
    isRead: bool = Field(False, description="Whether the book has been read")
    rating: float = Field(0, ge=0, le=5, description="0 means not rated")
    notes: Optional[str] = None
    coverUrl: Optional[str] = Field(None, description="Cover image URL")
    dateAdded: Optional[datetime] = Field(None, description="Set once on creation")

    @classmethod
    def from_document(cls, doc: dict) -> "Book":
        data = dict(doc)
        data["_id"] = str(data["_id"])
        added = data.get("dateAdded")
        # pymongo hands back naive UTC datetimes
        if isinstance(added, datetime) and added.tzinfo is None:
            data["dateAdded"] = added.replace(tzinfo=timezone.utc)
        return cls.model_validate(data)


class DeletedBook(BaseModel):
    message: str
    book: Book


class Stats(BaseModel):
    total: int = Field(..., description="Number of books")
    read: int = Field(..., description="Books marked as read")
    unread: int = Field(..., description="Books not yet read")
    averageRating: float = Field(..., description="Mean of ratings above 0, one decimal")
