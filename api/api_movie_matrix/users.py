from flask import Blueprint, jsonify, request

from movie_matrix_functions import get_store
from users_functions import register_user

users_bp = Blueprint("users", __name__)


@users_bp.route("/users", methods=["POST"])
def create_user():
    """
    Handle POST requests that register a user profile.

    Registering an email twice is not an error; the second call reports
    that the user already exists and changes nothing.

    Returns:
        Response: Insert result (201) or existing-user message (200).
    """
    payload, created = register_user(get_store(), request.get_json(silent=True))
    return jsonify(payload), 201 if created else 200


@users_bp.route("/stats/users-count", methods=["GET"])
def get_users_count():
    return jsonify({"totalUsers": get_store().users.count_documents({})})
