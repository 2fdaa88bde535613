from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from movie_matrix_functions import (
    Conflict,
    Forbidden,
    MovieMatrixStore,
    NotFound,
    ValidationError,
    delete_result_payload,
    normalize_movie_id,
    parse_object_id,
    read_email,
    round_rating,
    safe_float,
    serialize_document,
    update_result_payload,
    utc_timestamp_iso,
)

MIN_REVIEW_RATING = 1
MAX_REVIEW_RATING = 10
RATING_LOCK_PREFIX = "movie_rating_lock"
NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def parse_review_rating(raw_rating):
    """
    Validate a review rating.

    Args:
        raw_rating (Any): Rating taken from the request body.

    Returns:
        float | int: Rating within the accepted bounds.

    Raises:
        ValidationError: When the rating is not numeric or out of range.
    """
    rating = safe_float(raw_rating)
    if rating is None:
        raise ValidationError("rating must be a number")
    if rating < MIN_REVIEW_RATING or rating > MAX_REVIEW_RATING:
        raise ValidationError(f"rating must be between {MIN_REVIEW_RATING} and {MAX_REVIEW_RATING}")
    return int(rating) if rating.is_integer() else rating


def moderated_reviews_query(movie_id: str):
    return {"movieId": movie_id, "moderated": True}


def summarize_ratings(reviews: list[dict]):
    """
    Compute the rounded mean and count of review ratings.

    Args:
        reviews (list[dict]): Review documents carrying a ``rating``.

    Returns:
        tuple[float, int]: Average rating (0 when empty) and review count.
    """
    ratings = [safe_float(review.get("rating"), 0.0) for review in reviews]
    if not ratings:
        return 0, 0
    return round_rating(sum(ratings) / len(ratings)), len(ratings)


def movie_rating_lock(store: MovieMatrixStore, movie_id: str):
    """
    Build the per-movie Redis lock guarding review writes and the recompute.

    Holding it across the write and the recompute means a request that cannot
    get the lock fails before touching the reviews collection.

    Args:
        store (MovieMatrixStore): Store handles.
        movie_id (str): Identifier of the movie, as stored on reviews.

    Returns:
        Lock: Context manager raising ``LockError`` when not acquired in time.
    """
    return store.redis.lock(
        f"{RATING_LOCK_PREFIX}:{movie_id}",
        timeout=store.lock_timeout,
        blocking_timeout=store.lock_wait,
    )


def refresh_movie_rating(store: MovieMatrixStore, movie_id: str):
    """
    Recompute a movie's cached rating from its moderated reviews.

    Callers hold ``movie_rating_lock`` for the movie so concurrent review
    changes cannot overwrite each other's result.

    Args:
        store (MovieMatrixStore): Store handles.
        movie_id (str): Identifier of the movie, as stored on reviews.

    Returns:
        tuple[float, int] | None: New rating and count, or None when the
        identifier cannot reference a movie.
    """
    movie_oid = parse_object_id(movie_id)
    if movie_oid is None:
        print(f"skipping rating refresh, invalid movie id: {movie_id!r}")
        return None

    moderated = list(store.reviews.find(moderated_reviews_query(movie_id), {"rating": 1}))
    average, count = summarize_ratings(moderated)
    store.movies.update_one({"_id": movie_oid}, {"$set": {"rating": average, "reviewCount": count}})
    return average, count


def list_movie_reviews(store: MovieMatrixStore, movie_id: str):
    cursor = store.reviews.find(moderated_reviews_query(normalize_movie_id(movie_id))).sort(NEWEST_FIRST)
    return [serialize_document(review) for review in cursor]


def submit_review(store: MovieMatrixStore, payload: dict):
    """
    Create a review and refresh the movie's aggregate.

    Args:
        store (MovieMatrixStore): Store handles.
        payload (dict): Request body.

    Returns:
        dict: Serialized review as stored.

    Raises:
        ValidationError: When required fields are missing or invalid.
        Conflict: When the user already reviewed the movie.
    """
    movie_id = normalize_movie_id(payload.get("movieId"))
    user_email = read_email(payload.get("userEmail"))
    raw_rating = payload.get("rating")

    if not movie_id or not user_email or raw_rating in (None, ""):
        raise ValidationError("movieId, rating and userEmail are required")
    rating = parse_review_rating(raw_rating)

    review = {
        "movieId": movie_id,
        "rating": rating,
        "comment": payload.get("comment") or "",
        "userEmail": user_email,
        "userName": payload.get("userName"),
        "userPhoto": payload.get("userPhoto"),
        "createdAt": utc_timestamp_iso(),
        "moderated": True,
    }
    with movie_rating_lock(store, movie_id):
        if store.reviews.find_one({"movieId": movie_id, "userEmail": user_email}):
            raise Conflict("You have already reviewed this movie")
        try:
            result = store.reviews.insert_one(review)
        except DuplicateKeyError:
            raise Conflict("You have already reviewed this movie")
        refresh_movie_rating(store, movie_id)

    review["_id"] = result.inserted_id
    return serialize_document(review)


def find_owned_review(store: MovieMatrixStore, review_id: str, user_email: str):
    """
    Load a review and check that ``user_email`` wrote it.

    Args:
        store (MovieMatrixStore): Store handles.
        review_id (str): Identifier from the path.
        user_email (str): Email claimed by the caller.

    Returns:
        dict: Review document.

    Raises:
        ValidationError: When the identifier or email is missing or malformed.
        NotFound: When no review has that identifier.
        Forbidden: When the review belongs to another user.
    """
    review_oid = parse_object_id(review_id)
    if review_oid is None:
        raise ValidationError("The ID of the review is invalid")
    if not user_email:
        raise ValidationError("userEmail is required")

    review = store.reviews.find_one({"_id": review_oid})
    if not review:
        raise NotFound("Review not found")
    if review.get("userEmail") != user_email:
        raise Forbidden("You can only change your own reviews")
    return review


def edit_review(store: MovieMatrixStore, review_id: str, payload: dict):
    """
    Apply the supplied rating and/or comment to a review.

    Args:
        store (MovieMatrixStore): Store handles.
        review_id (str): Identifier from the path.
        payload (dict): Request body with ``userEmail`` and editable fields.

    Returns:
        dict: Update result payload.
    """
    user_email = read_email(payload.get("userEmail"))
    review = find_owned_review(store, review_id, user_email)

    updates = {}
    if payload.get("rating") not in (None, ""):
        updates["rating"] = parse_review_rating(payload.get("rating"))
    if "comment" in payload:
        updates["comment"] = payload.get("comment") or ""

    if not updates:
        raise ValidationError("No valid fields to update")

    updates["updatedAt"] = utc_timestamp_iso()
    with movie_rating_lock(store, review.get("movieId")):
        result = store.reviews.update_one({"_id": review["_id"]}, {"$set": updates})
        refresh_movie_rating(store, review.get("movieId"))
    return update_result_payload(result)


def remove_review(store: MovieMatrixStore, review_id: str, user_email: str):
    """
    Delete a review and refresh its movie's aggregate.

    Args:
        store (MovieMatrixStore): Store handles.
        review_id (str): Identifier from the path.
        user_email (str): Email claimed by the caller.

    Returns:
        dict: Delete result payload.
    """
    review = find_owned_review(store, review_id, read_email(user_email))
    with movie_rating_lock(store, review.get("movieId")):
        result = store.reviews.delete_one({"_id": review["_id"]})
        refresh_movie_rating(store, review.get("movieId"))
    return delete_result_payload(result)
