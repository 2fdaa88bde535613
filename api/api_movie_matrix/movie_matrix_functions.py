from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import math
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app
from pymongo import ASCENDING
from pymongo.database import Database
import redis


STORE_EXTENSION_KEY = "movie_matrix"


class ApiError(Exception):
    """Base error for failures that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class MovieMatrixStore:
    """
    Handles to the collections and the Redis client used by the handlers.

    Args:
        database (Database): MongoDB database handle.
        redis_client (Redis): Redis client used for recompute locks.
        lock_timeout (float): Seconds before a held lock expires.
        lock_wait (float): Seconds to wait when acquiring a lock.
    """

    def __init__(self, database: Database, redis_client: redis.Redis, lock_timeout: float = 10, lock_wait: float = 5):
        self.database = database
        self.movies = database["movies"]
        self.users = database["users"]
        self.watchlist = database["watchlist"]
        self.reviews = database["reviews"]
        self.redis = redis_client
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait

    def ensure_indexes(self):
        """Create the unique indexes backing the one-per-pair rules."""
        self.reviews.create_index([("movieId", ASCENDING), ("userEmail", ASCENDING)], unique=True)
        self.watchlist.create_index([("email", ASCENDING), ("movieId", ASCENDING)], unique=True)
        self.users.create_index("email", unique=True)


def get_store():
    """
    Return the store attached to the running Flask app.

    Returns:
        MovieMatrixStore: Store created by ``create_app``.
    """
    return current_app.extensions[STORE_EXTENSION_KEY]


def serialize_document(document: dict | None):
    """
    Serialize a MongoDB document to a JSON-friendly dictionary.

    Args:
        document (dict | None): MongoDB document.

    Returns:
        dict: Copy with the ``_id`` rendered as a string.
    """
    if not document:
        return {}
    payload = dict(document)
    if "_id" in payload and not isinstance(payload["_id"], str):
        payload["_id"] = str(payload["_id"])
    return payload


def serialize_documents(cursor):
    return [serialize_document(doc) for doc in cursor]


def parse_object_id(identifier: Any):
    """
    Convert a client-supplied identifier into an ObjectId.

    Args:
        identifier (Any): Raw identifier, usually a path segment.

    Returns:
        ObjectId | None: Parsed identifier or None when malformed.
    """
    try:
        return ObjectId(str(identifier).strip())
    except (InvalidId, TypeError):
        return None


def normalize_movie_id(movie_id: Any):
    """
    Render a movie reference the way the movie's own ``_id`` prints.

    Args:
        movie_id (Any): Reference sent by the client.

    Returns:
        str: Lowercase hex for ObjectId-shaped ids, otherwise the stripped text.
    """
    text = str(movie_id or "").strip()
    movie_oid = parse_object_id(text)
    return str(movie_oid) if movie_oid is not None else text


def safe_float(value, default=None):
    """
    Convert arbitrary values into floats while guarding against failures.

    Args:
        value (Any): Raw value to convert.
        default (float | None): Fallback value when parsing is unsuccessful.

    Returns:
        float | None: Parsed finite float or the provided default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return default
    return parsed if math.isfinite(parsed) else default


def round_rating(value: float):
    """
    Round a rating to one decimal place, halves going up.

    Args:
        value (float): Raw average.

    Returns:
        float: Rounded rating.
    """
    rounded = Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(rounded)


def utc_timestamp_iso():
    """
    Return the current UTC timestamp in ISO 8601 format.

    Returns:
        str: Timestamp with millisecond precision suffixed with ``Z``.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="milliseconds") + "Z"


def read_email(value: Any):
    return value.strip() if isinstance(value, str) else ""


def insert_result_payload(result):
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def update_result_payload(result):
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
    }


def delete_result_payload(result):
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
