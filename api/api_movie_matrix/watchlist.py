from flask import Blueprint, jsonify, request

from movie_matrix_functions import get_store
from watchlist_functions import add_to_watchlist, remove_from_watchlist, resolve_watchlist

watchlist_bp = Blueprint("watchlist", __name__)


@watchlist_bp.route("/watchlist/<email>", methods=["GET"])
def get_watchlist(email: str):
    """
    Handle GET requests for the movies on a user's watchlist.

    Args:
        email (str): Owner email taken from the path segment.

    Returns:
        Response: Movies referenced by the watchlist.
    """
    return jsonify(resolve_watchlist(get_store(), email))


@watchlist_bp.route("/watchlist", methods=["POST"])
def add_watchlist_entry():
    """
    Handle POST requests that add a movie to a watchlist.

    Returns:
        Response: Insert result with status 201.
    """
    payload = request.get_json(silent=True) or {}
    return jsonify(add_to_watchlist(get_store(), payload)), 201


@watchlist_bp.route("/watchlist/<email>/<movie_id>", methods=["DELETE"])
def delete_watchlist_entry(email: str, movie_id: str):
    """
    Handle DELETE requests that remove a movie from a watchlist.

    Args:
        email (str): Owner email from the path.
        movie_id (str): Movie identifier from the path.

    Returns:
        Response: Delete result payload.
    """
    return jsonify(remove_from_watchlist(get_store(), email, movie_id))


@watchlist_bp.route("/stats/watchlist-count/<email>", methods=["GET"])
def get_watchlist_count(email: str):
    return jsonify({"watchlistCount": get_store().watchlist.count_documents({"email": email})})
