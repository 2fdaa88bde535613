from flask import Blueprint, jsonify, request

from movie_matrix_functions import (
    get_store,
    insert_result_payload,
    parse_object_id,
    read_email,
    update_result_payload,
)
from movies_functions import *

movies_bp = Blueprint("movies", __name__)


@movies_bp.route("/movies", methods=["GET"])
def get_movies():
    """
    Handle GET requests for the full movie collection.

    Returns:
        Response: Flask response with every movie.
    """
    return jsonify(find_movies(get_store()))


@movies_bp.route("/movies/<movie_id>", methods=["GET"])
def get_movie_detail(movie_id: str):
    """
    Handle GET requests for a single movie and its reviews.

    Args:
        movie_id (str): Identifier taken from the path segment.

    Returns:
        Response: Flask response with movie data or error payload.
    """
    movie_oid = parse_object_id(movie_id)
    if movie_oid is None:
        return jsonify({"error": "The ID of the movie is invalid"}), 400

    store = get_store()
    movie = store.movies.find_one({"_id": movie_oid})
    if not movie:
        return jsonify({"error": "Movie not found"}), 404

    return jsonify(build_movie_detail(store, movie))


@movies_bp.route("/my-movies", methods=["GET"])
def get_my_movies():
    """
    Handle GET requests for the movies a user added.

    Returns:
        Response: Flask response with movies or error payload.
    """
    email = read_email(request.args.get("email"))
    if not email:
        return jsonify({"error": "email query parameter is required"}), 400

    return jsonify(find_movies(get_store(), {"addedBy": email}))


@movies_bp.route("/movies-top-rated", methods=["GET"])
def get_top_rated_movies():
    return jsonify(top_rated_movies(get_store()))


@movies_bp.route("/movies-recent", methods=["GET"])
def get_recent_movies():
    return jsonify(recent_movies(get_store()))


@movies_bp.route("/movies", methods=["POST"])
def add_movie():
    """
    Handle POST requests that insert a movie.

    Returns:
        Response: Insert result with status 201.
    """
    payload = build_movie_payload(request.get_json(silent=True))
    result = get_store().movies.insert_one(payload)
    return jsonify(insert_result_payload(result)), 201


@movies_bp.route("/movies/<movie_id>", methods=["PUT"])
def update_movie(movie_id: str):
    """
    Handle PUT requests that update a movie.

    Only the editable fields present in the body are written.

    Args:
        movie_id (str): Identifier taken from the path segment.

    Returns:
        Response: Update result or error payload.
    """
    movie_oid = parse_object_id(movie_id)
    if movie_oid is None:
        return jsonify({"error": "The ID of the movie is invalid"}), 400

    updates = build_movie_updates(request.get_json(silent=True))
    if not updates:
        return jsonify({"error": "No valid fields to update"}), 400

    result = get_store().movies.update_one({"_id": movie_oid}, {"$set": updates})
    if result.matched_count == 0:
        return jsonify({"error": "Movie not found"}), 404

    return jsonify(update_result_payload(result))


@movies_bp.route("/movies/<movie_id>", methods=["DELETE"])
def delete_movie(movie_id: str):
    """
    Handle DELETE requests that remove a movie and its reviews.

    Args:
        movie_id (str): Identifier taken from the path segment.

    Returns:
        Response: Delete counts or error payload.
    """
    deleted = delete_movie_cascade(get_store(), movie_id)
    if deleted is None:
        return jsonify({"error": "Movie not found"}), 404
    return jsonify(deleted)


@movies_bp.route("/movies/search/<query>", methods=["GET"])
def search_movies(query: str):
    """
    Handle GET requests for a case-insensitive title search.

    Args:
        query (str): Text taken from the path segment.

    Returns:
        Response: Matching movies.
    """
    return jsonify(find_movies(get_store(), {"title": contains_regex(query)}))


@movies_bp.route("/movies/genre/<genre>", methods=["GET"])
def get_movies_by_genre(genre: str):
    return jsonify(find_movies(get_store(), {"genre": contains_regex(genre)}))


@movies_bp.route("/movies/filter/genres", methods=["POST"])
def filter_movies_by_genres():
    """
    Handle POST requests that filter movies by a set of genres.

    Returns:
        Response: Movies whose genre is one of the requested ones.
    """
    payload = request.get_json(silent=True) or {}
    genres = parse_genre_list(payload.get("genres"))
    if not genres:
        return jsonify({"error": "genres must be a non-empty list"}), 400

    return jsonify(find_movies(get_store(), {"genre": {"$in": genres}}))


@movies_bp.route("/movies/filter/rating", methods=["GET"])
def filter_movies_by_rating():
    """
    Handle GET requests that filter movies by an inclusive rating range.

    Returns:
        Response: Movies rated between ``min`` and ``max``.
    """
    minimum, maximum = parse_rating_bounds(request.args.get("min"), request.args.get("max"))
    return jsonify(find_movies(get_store(), rating_range_query(minimum, maximum)))


@movies_bp.route("/movies/filter/advanced", methods=["POST"])
def filter_movies_advanced():
    """
    Handle POST requests combining the genre and rating filters.

    Returns:
        Response: Movies matching both conditions.
    """
    payload = request.get_json(silent=True) or {}
    return jsonify(find_movies(get_store(), build_advanced_filter(payload)))


@movies_bp.route("/stats/movies-count", methods=["GET"])
def get_movies_count():
    return jsonify({"totalMovies": get_store().movies.count_documents({})})
