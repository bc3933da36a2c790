"""
============================================================================
FILE: mock_firestore.py
LOCATION: eduportal/mock_firestore.py
============================================================================

PURPOSE:
    In-process stand-ins for the Firestore client and Firebase Auth, used
    when USE_REAL_FIREBASE is false (local development and the test suite).

ROLE IN PROJECT:
    - Implements the subset of the Firestore API the DocumentStore uses:
      collection/document CRUD, where/order_by/limit queries and atomic
      write batches
    - Optionally persists to a JSON file (MOCK_DB_FILE)
    - Mimics firebase_admin.auth for account creation and token checks

KEY COMPONENTS:
    - MockFirestoreClient: Entry point, owns all collection data
    - MockCollectionReference / MockQuery: Query building and streaming
    - MockDocumentReference / MockDocumentSnapshot: Document access
    - MockWriteBatch: All-or-nothing multi-document writes
    - MockTransaction / mock_transactional: Optimistic read-then-write
      transactions, retried when a document they read has changed
    - MockAuth: Account store and "mock-token-{role}-{uid}" tokens

USAGE:
    from eduportal.mock_firestore import MockFirestoreClient

    client = MockFirestoreClient()
    client.collection("departments").document("d1").set({"name": "CS"})
============================================================================
"""
import copy
import json
import operator
import os
import threading
import uuid
from typing import Any, Dict, Optional


class MockNotFound(Exception):
    """Raised when updating a document that does not exist."""


class MockAborted(Exception):
    """Raised when a transaction read data that changed before it committed."""


def _contains(value, item):
    return isinstance(value, list) and item in value


def _in(value, options):
    return bool(options) and value in options


def _not_in(value, options):
    return value not in (options or [])


def _ordered(compare):
    def check(value, other):
        return value is not None and compare(value, other)
    return check


FILTER_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": _ordered(operator.lt),
    "<=": _ordered(operator.le),
    ">": _ordered(operator.gt),
    ">=": _ordered(operator.ge),
    "array_contains": _contains,
    "in": _in,
    "not-in": _not_in,
}


class MockDocumentSnapshot:
    def __init__(self, ref, data):
        self._ref = ref
        self.id = ref.id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field_path):
        curr = self._data or {}
        for part in field_path.split("."):
            if not isinstance(curr, dict) or part not in curr:
                return None
            curr = curr[part]
        return copy.deepcopy(curr)

    @property
    def reference(self):
        return self._ref


class MockDocumentReference:
    def __init__(self, collection_parent, document_id):
        self.parent = collection_parent
        self.id = document_id

    @property
    def path(self):
        return f"{self.parent.path}/{self.id}"

    def get(self, transaction=None):
        with self.parent.client._lock:
            if transaction is not None:
                transaction._record_read(self.path)
            return MockDocumentSnapshot(self, copy.deepcopy(self.parent._docs.get(self.id)))

    def set(self, data: Dict[str, Any], merge=False):
        with self.parent.client._lock:
            self._apply_set(data, merge)
            self.parent.client._save_db()

    def update(self, data: Dict[str, Any]):
        with self.parent.client._lock:
            self._apply_update(data)
            self.parent.client._save_db()

    def delete(self):
        with self.parent.client._lock:
            self._apply_delete()
            self.parent.client._save_db()

    def _apply_set(self, data, merge=False):
        data = copy.deepcopy(data)
        if merge and self.id in self.parent._docs:
            self.parent._docs[self.id].update(data)
        else:
            self.parent._docs[self.id] = data
        self.parent.client._touch(self.path)

    def _apply_update(self, data):
        if self.id not in self.parent._docs:
            raise MockNotFound(f"Document {self.path} does not exist")
        self.parent._docs[self.id].update(copy.deepcopy(data))
        self.parent.client._touch(self.path)

    def _apply_delete(self):
        self.parent._docs.pop(self.id, None)
        self.parent.client._touch(self.path)


class MockQuery:
    def __init__(self, collection, filters=None, limit=None, order_by=None):
        self.collection = collection
        self.filters = list(filters or [])
        self.limit_val = limit
        self.order_by_val = list(order_by or [])

    def where(self, field, op, value):
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        return MockQuery(
            self.collection,
            self.filters + [(field, op, value)],
            self.limit_val,
            self.order_by_val,
        )

    def order_by(self, field, direction="ASCENDING"):
        return MockQuery(
            self.collection,
            self.filters,
            self.limit_val,
            self.order_by_val + [(field, direction)],
        )

    def limit(self, count):
        return MockQuery(self.collection, self.filters, count, self.order_by_val)

    def _matches(self, data):
        for field, op, value in self.filters:
            if not FILTER_OPERATORS[op](data.get(field), value):
                return False
        return True

    def _match_ids(self):
        return {
            doc_id for doc_id, data in self.collection._docs.items()
            if data is not None and self._matches(data)
        }

    def stream(self, transaction=None):
        with self.collection.client._lock:
            matches = [
                MockDocumentSnapshot(self.collection.document(doc_id), copy.deepcopy(data))
                for doc_id, data in self.collection._docs.items()
                if data is not None and self._matches(data)
            ]
            if transaction is not None:
                transaction._record_query(self, matches)

        for field, direction in reversed(self.order_by_val):
            matches.sort(
                key=lambda snap: (snap._data.get(field) is None, snap._data.get(field)),
                reverse=str(direction).upper() == "DESCENDING",
            )

        if self.limit_val:
            matches = matches[: self.limit_val]
        return iter(matches)

    def get(self, transaction=None):
        return list(self.stream(transaction=transaction))


class MockCollectionReference(MockQuery):
    def __init__(self, client, path):
        super().__init__(self)
        self.client = client
        self.path = path
        self.id = path.split("/")[-1]
        self._docs = self.client._db_data.setdefault(path, {})

    def document(self, document_id=None):
        return MockDocumentReference(self, document_id or uuid.uuid4().hex[:20])

    def add(self, data: Dict[str, Any]):
        doc_ref = self.document()
        doc_ref.set(data)
        return None, doc_ref


class MockWriteBatch:
    """Queues writes and applies them together on commit()."""

    def __init__(self, client):
        self.client = client
        self._writes = []

    def set(self, ref, data, merge=False):
        self._writes.append(("set", ref, data, merge))
        return self

    def update(self, ref, data):
        self._writes.append(("update", ref, data, None))
        return self

    def delete(self, ref):
        self._writes.append(("delete", ref, None, None))
        return self

    def commit(self):
        with self.client._lock:
            snapshot = copy.deepcopy(self.client._db_data)
            try:
                for kind, ref, data, merge in self._writes:
                    if kind == "set":
                        ref._apply_set(data, merge)
                    elif kind == "update":
                        ref._apply_update(data)
                    else:
                        ref._apply_delete()
            except MockNotFound:
                self.client._restore(snapshot)
                raise
            self.client._save_db()
        self._writes = []
        return []


class MockTransaction(MockWriteBatch):
    """
    Write batch that also remembers what it read.

    Every document read through the transaction is recorded with its
    version, and every query with the ids it matched. commit() raises
    MockAborted if any of them changed in the meantime, otherwise it
    applies the queued writes atomically. Reads after the first queued
    write are rejected, as Firestore does.
    """

    def __init__(self, client, max_attempts=5):
        super().__init__(client)
        self.max_attempts = max_attempts
        self._reads: Dict[str, int] = {}
        self._queries = []

    def _begin(self):
        self._writes = []
        self._reads = {}
        self._queries = []

    def _check_no_writes(self):
        if self._writes:
            raise ValueError("Firestore transactions require all reads to be executed before all writes.")

    def _record_read(self, path):
        self._check_no_writes()
        self._reads.setdefault(path, self.client._version(path))

    def _record_query(self, query, snapshots):
        self._check_no_writes()
        for snapshot in snapshots:
            self._record_read(snapshot.reference.path)
        self._queries.append((query, {snapshot.id for snapshot in snapshots}))

    def _is_stale(self):
        if any(self.client._version(path) != version for path, version in self._reads.items()):
            return True
        return any(query._match_ids() != ids for query, ids in self._queries)

    def commit(self):
        with self.client._lock:
            if self._is_stale():
                self._writes = []
                raise MockAborted("Transaction read data that has since changed")
            return super().commit()


def mock_transactional(func):
    """
    Mock counterpart of google.cloud.firestore.transactional.

    The wrapped function is called as func(transaction, *args, **kwargs)
    and re-run from scratch while its commit is aborted, up to
    transaction.max_attempts times.
    """
    def run(transaction, *args, **kwargs):
        for _ in range(transaction.max_attempts):
            transaction._begin()
            result = func(transaction, *args, **kwargs)
            try:
                transaction.commit()
            except MockAborted:
                continue
            return result
        raise MockAborted(f"Transaction failed to commit in {transaction.max_attempts} attempts")
    return run


class MockFirestoreClient:
    def __init__(self, db_file: Optional[str] = None):
        self.db_file = db_file
        self._db_data: Dict[str, Dict[str, dict]] = {}
        # Write counter per document path, for transaction conflict checks
        self._versions: Dict[str, int] = {}
        self._lock = threading.RLock()
        self.reload()

    def reload(self):
        if self.db_file and os.path.exists(self.db_file):
            with open(self.db_file, "r", encoding="utf-8") as f:
                self._db_data = json.load(f)
        else:
            self._db_data = {}

    def _version(self, path):
        return self._versions.get(path, 0)

    def _touch(self, path):
        self._versions[path] = self._version(path) + 1

    def _restore(self, snapshot):
        # Collection references hold the inner dicts, so restore in place
        for path in list(self._db_data):
            if path not in snapshot:
                self._db_data[path].clear()
        for path, docs in snapshot.items():
            current = self._db_data.setdefault(path, {})
            current.clear()
            current.update(docs)

    def _save_db(self):
        if not self.db_file:
            return
        with open(self.db_file, "w", encoding="utf-8") as f:
            json.dump(self._db_data, f, indent=2, default=str)

    def collection(self, name):
        return MockCollectionReference(self, name)

    def batch(self):
        return MockWriteBatch(self)

    def transaction(self, max_attempts=5):
        return MockTransaction(self, max_attempts=max_attempts)


class MockUserRecord:
    def __init__(self, uid, email, display_name=None, disabled=False):
        self.uid = uid
        self.email = email
        self.display_name = display_name
        self.disabled = disabled


class MockAuthError(Exception):
    pass


class MockEmailAlreadyExistsError(MockAuthError):
    pass


class MockUserNotFoundError(MockAuthError):
    pass


class MockInvalidIdTokenError(MockAuthError):
    pass


class MockAuth:
    """Account registry mirroring the firebase_admin.auth calls the portal makes."""

    # Exposed like firebase_admin.auth so callers can catch auth.UserNotFoundError
    EmailAlreadyExistsError = MockEmailAlreadyExistsError
    UserNotFoundError = MockUserNotFoundError
    InvalidIdTokenError = MockInvalidIdTokenError

    TOKEN_PREFIX = "mock-token-"
    # Longest first so "master-admin" is not read as "master" + "admin-..."
    TOKEN_ROLES = ("master-admin", "admin", "teacher")

    def __init__(self):
        self._users: Dict[str, MockUserRecord] = {}

    def create_user(self, uid=None, email=None, password=None, display_name=None, disabled=False, **kwargs):
        if not email:
            raise ValueError("Email required")
        if any(u.email == email for u in self._users.values()):
            raise self.EmailAlreadyExistsError("Email already exists")
        uid = uid or uuid.uuid4().hex[:28]
        user = MockUserRecord(uid, email, display_name, disabled)
        self._users[uid] = user
        return user

    def get_user(self, uid):
        if uid not in self._users:
            raise self.UserNotFoundError("User not found")
        return self._users[uid]

    def get_user_by_email(self, email):
        for user in self._users.values():
            if user.email == email:
                return user
        raise self.UserNotFoundError("User not found")

    def update_user(self, uid, **kwargs):
        user = self.get_user(uid)
        if "email" in kwargs:
            user.email = kwargs["email"]
        if "display_name" in kwargs:
            user.display_name = kwargs["display_name"]
        if "disabled" in kwargs:
            user.disabled = kwargs["disabled"]
        return user

    def delete_user(self, uid):
        if uid not in self._users:
            raise self.UserNotFoundError("User not found")
        del self._users[uid]

    def mint_id_token(self, uid: str, role: str) -> str:
        return f"{self.TOKEN_PREFIX}{role}-{uid}"

    def verify_id_token(self, token, check_revoked=False, clock_skew_seconds=0):
        if not isinstance(token, str) or not token.startswith(self.TOKEN_PREFIX):
            raise self.InvalidIdTokenError("Invalid mock token")
        rest = token[len(self.TOKEN_PREFIX):]
        for role in self.TOKEN_ROLES:
            if rest.startswith(role + "-") and len(rest) > len(role) + 1:
                return {"uid": rest[len(role) + 1:], "role": role}
        raise self.InvalidIdTokenError("Invalid mock token")
