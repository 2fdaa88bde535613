import math
import re

from pymongo import DESCENDING

from movie_matrix_functions import (
    MovieMatrixStore,
    ValidationError,
    parse_object_id,
    safe_float,
    serialize_document,
    utc_timestamp_iso,
)
from reviews_functions import list_movie_reviews, summarize_ratings

MOVIE_UPDATE_FIELDS = [
    "title",
    "genre",
    "releaseYear",
    "director",
    "cast",
    "rating",
    "duration",
    "plotSummary",
    "posterUrl",
    "language",
    "country",
]
MOVIE_REQUIRED_FIELDS = ["title", "genre", "rating"]
MIN_MOVIE_RATING = 0
MAX_MOVIE_RATING = 10
TOP_RATED_LIMIT = 5
RECENT_LIMIT = 6


def normalize_movie_rating(value):
    """
    Store numeric-looking ratings as numbers.

    Args:
        value (Any): Rating sent by the client.

    Returns:
        Any: Float or int when the value parses, otherwise the value unchanged.

    Raises:
        ValidationError: When the value is NaN or infinite.
    """
    try:
        numeric = float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        numeric = None
    if numeric is not None and not math.isfinite(numeric):
        raise ValidationError("rating must be a finite number")

    parsed = safe_float(value)
    if parsed is None:
        return value
    return int(parsed) if parsed.is_integer() else parsed


def build_movie_payload(data: dict | None):
    """
    Prepare an incoming JSON payload for persistence.

    Args:
        data (dict | None): Submitted JSON body.

    Returns:
        dict: Document ready to be inserted.

    Raises:
        ValidationError: When title, genre or rating is missing.
    """
    if not data or not isinstance(data, dict):
        raise ValidationError("Missing required fields: " + ", ".join(MOVIE_REQUIRED_FIELDS))

    missing = [field for field in MOVIE_REQUIRED_FIELDS if not data.get(field)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    payload = dict(data)
    payload.pop("_id", None)
    payload["rating"] = normalize_movie_rating(payload["rating"])
    payload.setdefault("reviewCount", 0)
    payload.setdefault("createdAt", utc_timestamp_iso())
    return payload


def build_movie_updates(data: dict | None):
    """
    Pick the allow-listed fields present in an update body.

    Args:
        data (dict | None): Submitted JSON body.

    Returns:
        dict: Fields to ``$set``; omitted fields keep their stored values.
    """
    if not data or not isinstance(data, dict):
        return {}
    updates = {field: data[field] for field in MOVIE_UPDATE_FIELDS if field in data}
    if "rating" in updates:
        updates["rating"] = normalize_movie_rating(updates["rating"])
    return updates


def contains_regex(text: str):
    """
    Build a case-insensitive substring match for user text.

    Args:
        text (str): Raw search text.

    Returns:
        dict: MongoDB ``$regex`` clause with the text escaped.
    """
    return {"$regex": re.escape(text), "$options": "i"}


def parse_rating_bounds(raw_min, raw_max):
    """
    Parse inclusive rating bounds, defaulting to the full scale.

    Args:
        raw_min (Any): Lower bound from the client.
        raw_max (Any): Upper bound from the client.

    Returns:
        tuple[float, float]: Lower and upper bound.

    Raises:
        ValidationError: When a bound is not numeric or min exceeds max.
    """
    bounds = []
    for label, raw_value, default in (("min", raw_min, MIN_MOVIE_RATING), ("max", raw_max, MAX_MOVIE_RATING)):
        if raw_value in (None, ""):
            bounds.append(default)
            continue
        parsed = safe_float(raw_value)
        if parsed is None:
            raise ValidationError(f"{label} rating must be a number")
        bounds.append(parsed)

    minimum, maximum = bounds
    if minimum > maximum:
        raise ValidationError("min rating cannot be greater than max rating")
    return minimum, maximum


def rating_range_query(minimum: float, maximum: float):
    return {"rating": {"$gte": minimum, "$lte": maximum}}


def parse_genre_list(raw_genres):
    """
    Clean a list of genres sent in a request body.

    Args:
        raw_genres (Any): Value of the ``genres`` key.

    Returns:
        list[str]: Non-empty, stripped genre names in their original order.
    """
    if isinstance(raw_genres, str):
        raw_genres = [raw_genres]
    if not isinstance(raw_genres, list):
        return []
    genres = []
    for entry in raw_genres:
        if not isinstance(entry, str):
            continue
        name = entry.strip()
        if name and name not in genres:
            genres.append(name)
    return genres


def build_advanced_filter(payload: dict):
    """
    Build the combined genre and rating query for the advanced filter.

    Args:
        payload (dict): Request body with ``genres``, ``minRating`` and ``maxRating``.

    Returns:
        dict: MongoDB filter.
    """
    minimum, maximum = parse_rating_bounds(payload.get("minRating"), payload.get("maxRating"))
    query = rating_range_query(minimum, maximum)
    genres = parse_genre_list(payload.get("genres"))
    if genres:
        query["genre"] = {"$in": genres}
    return query


def find_movies(store: MovieMatrixStore, filter_query: dict | None = None, sort=None, limit: int | None = None):
    """
    Retrieve and serialize movie documents.

    Args:
        store (MovieMatrixStore): Store handles.
        filter_query (dict | None): Optional MongoDB filter.
        sort (list | None): Optional sort specification.
        limit (int | None): Optional maximum number of documents.

    Returns:
        list[dict]: Serialized movies.
    """
    cursor = store.movies.find(filter_query or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize_document(movie) for movie in cursor]


def top_rated_movies(store: MovieMatrixStore):
    return find_movies(store, sort=[("rating", DESCENDING)], limit=TOP_RATED_LIMIT)


def recent_movies(store: MovieMatrixStore):
    return find_movies(store, sort=[("_id", DESCENDING)], limit=RECENT_LIMIT)


def build_movie_detail(store: MovieMatrixStore, movie: dict):
    """
    Attach the moderated reviews and their average to a movie.

    Args:
        store (MovieMatrixStore): Store handles.
        movie (dict): Movie document.

    Returns:
        dict: Serialized movie with ``reviews``, ``averageRating`` and ``reviewCount``.
    """
    detail = serialize_document(movie)
    reviews = list_movie_reviews(store, detail["_id"])
    average, count = summarize_ratings(reviews)
    detail["reviews"] = reviews
    detail["averageRating"] = average
    detail["reviewCount"] = count
    return detail


def delete_movie_cascade(store: MovieMatrixStore, movie_id: str):
    """
    Delete a movie after removing every review attached to it.

    Args:
        store (MovieMatrixStore): Store handles.
        movie_id (str): Identifier from the path.

    Returns:
        dict | None: Delete counts, or None when the movie did not exist.

    Raises:
        ValidationError: When the identifier is malformed.
    """
    movie_oid = parse_object_id(movie_id)
    if movie_oid is None:
        raise ValidationError("The ID of the movie is invalid")

    reviews_result = store.reviews.delete_many({"movieId": str(movie_oid)})
    result = store.movies.delete_one({"_id": movie_oid})
    if result.deleted_count == 0:
        return None
    return {
        "acknowledged": result.acknowledged,
        "deletedCount": result.deleted_count,
        "deletedReviews": reviews_result.deleted_count,
    }
