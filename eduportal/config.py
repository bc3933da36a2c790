"""
============================================================================
FILE: config.py
LOCATION: eduportal/config.py
============================================================================

PURPOSE:
    Centralized configuration for the portal backend and its Firebase
    collaborators (Firestore, Firebase Auth, Cloud Storage).

ROLE IN PROJECT:
    Loads environment variables once at import time and hands out lazily
    created clients, switching between the in-process mock store and real
    Firebase with USE_REAL_FIREBASE.

KEY COMPONENTS:
    - get_db: Returns mock or real Firestore client
    - get_auth: Returns MockAuth or firebase_admin.auth
    - init_firebase: Initializes Firebase Admin SDK
    - reset_clients: Drops cached clients (used by the test suite)

DEPENDENCIES:
    - External: firebase_admin, python-dotenv
    - Internal: mock_firestore (mock mode only)

USAGE:
    from eduportal import config

    db = config.get_db()
    if config.CONCEAL_FORBIDDEN_RECORDS:
        ...
============================================================================
"""

import os
from pathlib import Path

import dotenv
import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import firestore


# Load environment variables from .env
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DOTENV_PATH = PROJECT_ROOT / ".env"
if DOTENV_PATH.exists():
    dotenv.load_dotenv(DOTENV_PATH, override=False)


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


APP_NAME = "EduPortal API"
APP_VERSION = "1.0.0"

# Firebase Configuration
USE_REAL_FIREBASE = _env_flag("USE_REAL_FIREBASE")
USE_MOCK_DB = not USE_REAL_FIREBASE
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY", "")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "")

# Empty string keeps the mock database in memory only
MOCK_DB_FILE = os.getenv("MOCK_DB_FILE", "")

# Uploads
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(PROJECT_ROOT / "uploads")))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

# Password hashing cost factor, never below 10
BCRYPT_ROUNDS = max(10, int(os.getenv("BCRYPT_ROUNDS", "12")))

# Master admin bootstrap
MASTER_ADMIN_EMAIL = os.getenv("MASTER_ADMIN_EMAIL", "")
MASTER_ADMIN_PASSWORD = os.getenv("MASTER_ADMIN_PASSWORD", "")
MASTER_ADMIN_NAME = os.getenv("MASTER_ADMIN_NAME", "Master Admin")

# Answer 404 instead of 403 for records outside the caller's scope
CONCEAL_FORBIDDEN_RECORDS = _env_flag("CONCEAL_FORBIDDEN_RECORDS")

# Rate limiting
RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
DEFAULT_RATE_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "100/minute")
LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10/minute")

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _env_flag("LOG_JSON")

# Global client instances
_db_instance = None
_auth_instance = None


def _resolve_credentials_path():
    """Resolve the Firebase credentials file path.

    Returns:
        Path: Absolute path to the service account JSON file.
    """
    env_path = os.getenv("FIREBASE_CREDENTIALS")
    if env_path:
        path = Path(env_path)
        if not path.is_absolute():
            path = PROJECT_ROOT / env_path
        return path
    return PROJECT_ROOT / "serviceAccountKey.json"


def init_firebase():
    """Initialize Firebase Admin SDK once per process.

    Raises:
        FileNotFoundError: If real Firebase credentials are missing.
    """
    if firebase_admin._apps:
        return
    key_path = _resolve_credentials_path()
    if not key_path.exists():
        raise FileNotFoundError(
            f"Firebase credentials not found: {key_path}",
        )
    options = {"storageBucket": STORAGE_BUCKET} if STORAGE_BUCKET else None
    firebase_admin.initialize_app(credentials.Certificate(str(key_path)), options)


def get_db():
    """Get Firestore database client (mock or real).

    Returns:
        object: Firestore client or MockFirestoreClient instance.

    Raises:
        FileNotFoundError: If real Firebase credentials are missing.
    """
    global _db_instance
    if _db_instance is None:
        if USE_MOCK_DB:
            from eduportal.mock_firestore import MockFirestoreClient

            _db_instance = MockFirestoreClient(db_file=MOCK_DB_FILE or None)
        else:
            init_firebase()
            _db_instance = firestore.client()
    return _db_instance


def get_auth():
    """Get Firebase auth module or mock auth.

    Returns:
        object: MockAuth instance or firebase_admin.auth module.
    """
    global _auth_instance
    if _auth_instance is None:
        if USE_MOCK_DB:
            from eduportal.mock_firestore import MockAuth

            _auth_instance = MockAuth()
        else:
            init_firebase()
            _auth_instance = firebase_auth
    return _auth_instance


def reset_clients():
    """Forget cached clients so the next call builds fresh ones."""
    global _db_instance, _auth_instance
    _db_instance = None
    _auth_instance = None
