import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pymongo.collection import Collection

import config
from database import Store, connect, get_books_collection, get_store
from errors import BookError, StoreError, ValidationError
from repository import BookRepository
from schemas import Book, DeletedBook, Stats
from validation import prepare_book, validate_book

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

BODY_NOT_OBJECT = "Request body must be a JSON object"


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.store = connect()
    except Exception:
        logger.exception(f"Could not connect to MongoDB at {config.MONGODB_URI}")
        raise
    logger.info(f"Book Tracker API listening on http://{config.HOST}:{config.PORT}/api/books")
    yield
    logger.info("Shutting down, closing MongoDB connection...")
    app.state.store.close()


app = FastAPI(title="Book Tracker API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookError)
async def book_error_handler(request: Request, exc: BookError):
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}", exc_info=exc.cause)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationError(errors).to_dict(),
    )


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError([BODY_NOT_OBJECT])
    return payload


def get_repository(collection: Collection = Depends(get_books_collection)) -> BookRepository:
    return BookRepository(collection)


# Health
@app.get("/health", tags=["System"])
def health_check(store: Store = Depends(get_store)):
    if not store.ping():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "degraded", "components": {"database": "unhealthy"}},
        )
    return {"status": "healthy", "components": {"database": "connected"}}


# Books
@app.get("/api/books", response_model=List[Book])
def list_books(
    genre: Optional[str] = None,
    isRead: Optional[str] = None,
    sortBy: Optional[str] = None,
    repo: BookRepository = Depends(get_repository),
):
    return repo.list_books(genre=genre, is_read=isRead, sort_by=sortBy)


@app.get("/api/books/{book_id}", response_model=Book)
def get_book(book_id: str, repo: BookRepository = Depends(get_repository)):
    return repo.get_book(book_id)


@app.post("/api/books", response_model=Book, status_code=status.HTTP_201_CREATED)
def create_book(payload: Any = Body(None), repo: BookRepository = Depends(get_repository)):
    payload = _require_object(payload)
    errors = validate_book(payload)
    if errors:
        raise ValidationError(errors)
    return repo.create_book(prepare_book(payload))


@app.put("/api/books/{book_id}", response_model=Book)
def update_book(book_id: str, payload: Any = Body(None),
                repo: BookRepository = Depends(get_repository)):
    if isinstance(payload, dict):
        errors = validate_book(payload, is_update=True)
    else:
        errors = [BODY_NOT_OBJECT]
    if errors:
        # a missing book is reported as 404 whatever the body holds
        repo.get_book(book_id)
        raise ValidationError(errors)
    return repo.update_book(book_id, prepare_book(payload, is_update=True))


@app.delete("/api/books/{book_id}", response_model=DeletedBook)
def delete_book(book_id: str, repo: BookRepository = Depends(get_repository)):
    book = repo.delete_book(book_id)
    return DeletedBook(message="book deleted", book=book)


@app.get("/api/stats", response_model=Stats)
def stats(repo: BookRepository = Depends(get_repository)):
    return repo.compute_stats()


# Client entry page and its assets
@app.get("/{full_path:path}", include_in_schema=False)
def static_fallback(full_path: str):
    static_dir = config.STATIC_DIR.resolve()
    candidate = (static_dir / full_path).resolve()
    if full_path and candidate.is_file() and candidate.is_relative_to(static_dir):
        return FileResponse(candidate)
    index = static_dir / "index.html"
    if not index.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return FileResponse(index)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
