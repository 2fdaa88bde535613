from pymongo.errors import DuplicateKeyError

from movie_matrix_functions import MovieMatrixStore, ValidationError, insert_result_payload, read_email, utc_timestamp_iso

USER_EXISTS_MESSAGE = "User already exists"


def register_user(store: MovieMatrixStore, payload: dict | None):
    """
    Insert a user profile unless one already uses the same email.

    Args:
        store (MovieMatrixStore): Store handles.
        payload (dict | None): Profile fields sent by the client.

    Returns:
        tuple[dict, bool]: Response payload and whether a user was created.

    Raises:
        ValidationError: When the email is missing.
    """
    profile = dict(payload) if isinstance(payload, dict) else {}
    email = read_email(profile.get("email"))
    if not email:
        raise ValidationError("email is required")

    if store.users.find_one({"email": email}, {"_id": 1}):
        return {"message": USER_EXISTS_MESSAGE, "insertedId": None}, False

    profile.pop("_id", None)
    profile["email"] = email
    profile.setdefault("createdAt", utc_timestamp_iso())
    try:
        result = store.users.insert_one(profile)
    except DuplicateKeyError:
        # registered by a concurrent request
        return {"message": USER_EXISTS_MESSAGE, "insertedId": None}, False

    return insert_result_payload(result), True
