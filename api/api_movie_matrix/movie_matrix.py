import os
from urllib.parse import quote_plus

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi
import redis

from movie_matrix_functions import STORE_EXTENSION_KEY, ApiError, MovieMatrixStore
from movies import movies_bp
from reviews import reviews_bp
from users import users_bp
from watchlist import watchlist_bp

load_dotenv()

PORT = int(os.getenv("PORT", 3000))
DB_USERNAME = os.getenv("DB_USERNAME", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DATABASE_NAME = "movie_matrix"

RATING_LOCK_TIMEOUT = float(os.getenv("RATING_LOCK_TIMEOUT", 10))
RATING_LOCK_WAIT = float(os.getenv("RATING_LOCK_WAIT", 5))


def build_mongo_uri():
    """
    Build the MongoDB connection string.

    ``MONGO_URI`` wins when set, otherwise the Atlas cluster URI is built from
    ``DB_USERNAME`` and ``DB_PASSWORD``.

    Returns:
        str: Connection string.
    """
    override = os.getenv("MONGO_URI")
    if override:
        return override
    return (
        f"mongodb+srv://{quote_plus(DB_USERNAME)}:{quote_plus(DB_PASSWORD)}"
        "@cluster0.cjj6frc.mongodb.net/?appName=Cluster0"
    )


def connect_database():
    """
    Open the MongoDB client and ping the deployment.

    A failed ping is printed and otherwise ignored so the server still starts.

    Returns:
        Database: Handle to the application database.
    """
    client = MongoClient(build_mongo_uri(), server_api=ServerApi("1", strict=True, deprecation_errors=True))
    try:
        client.admin.command("ping")
        print("Pinged your deployment. You successfully connected to MongoDB!")
    except PyMongoError as e:
        print("MongoDB ping failed:", e)
    return client[DATABASE_NAME]


def connect_redis():
    return redis.Redis(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", 6379)),
        db=int(os.environ.get("REDIS_DB", 0)),
    )


def register_error_handlers(app: Flask):
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(PyMongoError)
    def handle_store_error(error: PyMongoError):
        print("store error:", error)
        return jsonify({"error": "Internal server error", "message": str(error)}), 500

    @app.errorhandler(redis.RedisError)
    def handle_redis_error(error: redis.RedisError):
        print("redis error:", error)
        return jsonify({"error": "Internal server error", "message": str(error)}), 500


def create_app(database=None, redis_client=None, lock_timeout: float = RATING_LOCK_TIMEOUT, lock_wait: float = RATING_LOCK_WAIT):
    """
    Build the Flask application.

    Args:
        database (Database | None): MongoDB database; connects from the
            environment when omitted.
        redis_client (Redis | None): Redis client; connects from the
            environment when omitted.
        lock_timeout (float): Expiry of the per-movie rating lock, in seconds.
        lock_wait (float): How long a request waits for that lock, in seconds.

    Returns:
        Flask: Configured application.
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    CORS(app)

    if database is None:
        database = connect_database()
    if redis_client is None:
        redis_client = connect_redis()

    store = MovieMatrixStore(database, redis_client, lock_timeout=lock_timeout, lock_wait=lock_wait)
    try:
        store.ensure_indexes()
    except PyMongoError as e:
        print("could not create indexes:", e)
    app.extensions[STORE_EXTENSION_KEY] = store

    @app.route("/", methods=["GET"])
    def health_check():
        return "Server Is running"

    app.register_blueprint(movies_bp)
    app.register_blueprint(reviews_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(watchlist_bp)
    register_error_handlers(app)
    return app


if __name__ == "__main__":
    app = create_app()
    print(f"Server is running on port {PORT}")
    app.run(host="0.0.0.0", port=PORT, debug=True)
