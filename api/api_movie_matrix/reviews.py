from flask import Blueprint, jsonify, request

from movie_matrix_functions import get_store, read_email, serialize_documents
from reviews_functions import NEWEST_FIRST, edit_review, list_movie_reviews, remove_review, submit_review

reviews_bp = Blueprint("reviews", __name__)


@reviews_bp.route("/reviews/<movie_id>", methods=["GET"])
def get_movie_reviews(movie_id: str):
    """
    Handle GET requests for the moderated reviews of a movie.

    Args:
        movie_id (str): Movie identifier taken from the path segment.

    Returns:
        Response: Reviews sorted newest first.
    """
    return jsonify(list_movie_reviews(get_store(), movie_id))


@reviews_bp.route("/my-reviews", methods=["GET"])
def get_my_reviews():
    """
    Handle GET requests for the reviews written by one user.

    Returns:
        Response: Flask response with review entries or error payload.
    """
    email = read_email(request.args.get("email"))
    if not email:
        return jsonify({"error": "email query parameter is required"}), 400

    cursor = get_store().reviews.find({"userEmail": email}).sort(NEWEST_FIRST)
    return jsonify(serialize_documents(cursor))


@reviews_bp.route("/reviews", methods=["POST"])
def create_review():
    """
    Handle POST requests that submit a review.

    Returns:
        Response: Created review with status 201.
    """
    payload = request.get_json(silent=True) or {}
    review = submit_review(get_store(), payload)
    return jsonify(review), 201


@reviews_bp.route("/reviews/<review_id>", methods=["PUT"])
def update_review(review_id: str):
    """
    Handle PUT requests that edit the caller's own review.

    Args:
        review_id (str): Identifier taken from the path segment.

    Returns:
        Response: Update result payload.
    """
    payload = request.get_json(silent=True) or {}
    return jsonify(edit_review(get_store(), review_id, payload))


@reviews_bp.route("/reviews/<review_id>", methods=["DELETE"])
def delete_review(review_id: str):
    """
    Handle DELETE requests that remove the caller's own review.

    Args:
        review_id (str): Identifier taken from the path segment.

    Returns:
        Response: Delete result payload.
    """
    return jsonify(remove_review(get_store(), review_id, request.args.get("email")))


@reviews_bp.route("/stats/reviews-count", methods=["GET"])
def get_reviews_count():
    return jsonify({"totalReviews": get_store().reviews.count_documents({})})
