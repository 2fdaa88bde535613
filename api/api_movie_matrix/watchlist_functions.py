from pymongo.errors import DuplicateKeyError

from movie_matrix_functions import (
    Conflict,
    MovieMatrixStore,
    NotFound,
    ValidationError,
    delete_result_payload,
    insert_result_payload,
    parse_object_id,
    read_email,
    serialize_document,
    utc_timestamp_iso,
)


def add_to_watchlist(store: MovieMatrixStore, payload: dict):
    """
    Add a movie reference to a user's watchlist.

    Args:
        store (MovieMatrixStore): Store handles.
        payload (dict): Body with ``email`` and ``movieId``.

    Returns:
        dict: Insert result payload.

    Raises:
        ValidationError: When email or movieId is missing.
        Conflict: When the movie is already on the watchlist.
    """
    email = read_email(payload.get("email"))
    movie_id = str(payload.get("movieId") or "").strip()
    if not email or not movie_id:
        raise ValidationError("email and movieId are required")

    entry = {"email": email, "movieId": movie_id}
    if store.watchlist.find_one(entry):
        raise Conflict("Movie already in watchlist")

    entry["addedAt"] = utc_timestamp_iso()
    try:
        result = store.watchlist.insert_one(entry)
    except DuplicateKeyError:
        raise Conflict("Movie already in watchlist")
    return insert_result_payload(result)


def remove_from_watchlist(store: MovieMatrixStore, email: str, movie_id: str):
    result = store.watchlist.delete_one({"email": email, "movieId": movie_id})
    if result.deleted_count == 0:
        raise NotFound("Movie not found in watchlist")
    return delete_result_payload(result)


def resolve_watchlist(store: MovieMatrixStore, email: str):
    """
    Load the movies referenced by a user's watchlist.

    Entries whose movieId is not a valid ObjectId are skipped; references to
    movies that no longer exist simply do not match.

    Args:
        store (MovieMatrixStore): Store handles.
        email (str): Owner of the watchlist.

    Returns:
        list[dict]: Serialized movies in store order.
    """
    movie_ids = []
    for entry in store.watchlist.find({"email": email}, {"movieId": 1}):
        movie_oid = parse_object_id(entry.get("movieId"))
        if movie_oid is None:
            print(f"watchlist entry {entry.get('_id')} has invalid movieId {entry.get('movieId')!r}, skipping")
            continue
        movie_ids.append(movie_oid)

    if not movie_ids:
        return []
    return [serialize_document(movie) for movie in store.movies.find({"_id": {"$in": movie_ids}})]
