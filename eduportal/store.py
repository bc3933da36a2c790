# store.py
# Collection-scoped document access on top of the Firestore client

# DocumentStore wraps one Firestore collection (real or mock) and exposes the
# small vocabulary the handlers need: get, find, find_one, exists, count,
# create, update, delete and reference population.
# Reads accept an optional transaction so read-then-write sequences (chapter
# numbering) can run under PortalStores.transaction().
# Records are plain dicts with the document id merged in under "id".
# Sorting is done in Python so no composite indexes are required.

# @see: config.py - get_db() picks the mock or real client
# @see: mock_firestore.py - In-process client used in tests
# @note: Firestore caps "in" filters at 30 values; larger sets are chunked

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from google.cloud.firestore import transactional

from eduportal import config
from eduportal.mock_firestore import MockTransaction, mock_transactional


Filter = Tuple[str, str, Any]

IN_QUERY_LIMIT = 30

USERS = "users"
DEPARTMENTS = "departments"
SUBJECTS = "subjects"
CHAPTERS = "chapters"
CONTENT = "content"


def utc_now() -> str:
    """ISO 8601 timestamp used for createdAt/updatedAt fields."""
    return datetime.now(timezone.utc).isoformat()


def _record_matches(record: dict, rule: Filter) -> bool:
    field, op, value = rule
    actual = record.get(field)
    if op == "==":
        return actual == value
    if op == "!=":
        return actual != value
    if op == "in":
        return actual in set(value)
    if op == "array_contains":
        return isinstance(actual, list) and value in actual
    raise ValueError(f"Unsupported in-memory filter operator: {op}")


def run_transaction(db, work: Callable, *args):
    """
    Run work(transaction, *args) in a Firestore transaction and return its
    result. The client re-runs work from the start when a document it read
    changed before the commit, so work must only read through the
    transaction and must not have side effects outside it.
    """
    transaction = db.transaction()
    if isinstance(transaction, MockTransaction):
        return mock_transactional(work)(transaction, *args)
    return transactional(work)(transaction, *args)


def _sort_records(records: List[dict], order_by: Sequence[str]) -> List[dict]:
    # "-field" sorts descending; apply keys last to first on a stable sort
    for key in reversed(order_by):
        descending = key.startswith("-")
        field = key.lstrip("-")
        records.sort(
            key=lambda record: (record.get(field) is None, record.get(field)),
            reverse=descending,
        )
    return records


class DocumentStore:
    """Dict-in, dict-out access to a single Firestore collection."""

    def __init__(self, collection_name: str, firestore_db=None):
        """Initialize with optional Firestore client injection for testing."""
        self.name = collection_name
        self.db = firestore_db or config.get_db()
        self.collection = self.db.collection(collection_name)

    @staticmethod
    def _to_record(snapshot) -> dict:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data

    def _query(self, filters: Sequence[Filter], limit: Optional[int] = None):
        query = self.collection
        for field, op, value in filters:
            query = query.where(field, op, value)
        if limit:
            query = query.limit(limit)
        return query

    def get(self, doc_id: Optional[str], transaction=None) -> Optional[dict]:
        """
        Fetch one document by id.

        Args:
            doc_id: Document id (None or empty returns None)
            transaction: Read inside this transaction when given

        Returns:
            Record dict, or None if the document does not exist
        """
        if not doc_id:
            return None
        snapshot = self.collection.document(doc_id).get(transaction=transaction)
        if not snapshot.exists:
            return None
        return self._to_record(snapshot)

    def get_many(self, doc_ids: Iterable[str], transaction=None) -> Dict[str, dict]:
        """Fetch several documents by id; missing ones are left out."""
        found = {}
        for doc_id in dict.fromkeys(doc_id for doc_id in doc_ids if doc_id):
            record = self.get(doc_id, transaction=transaction)
            if record is not None:
                found[doc_id] = record
        return found

    def find(
        self,
        filters: Sequence[Filter] = (),
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
        transaction=None,
    ) -> List[dict]:
        """
        Run an equality/range/membership query.

        Args:
            filters: (field, op, value) tuples, combined with AND
            order_by: Field names, prefixed with "-" for descending
            limit: Maximum number of records returned
            transaction: Read inside this transaction when given

        Returns:
            Matching records
        """
        filters = list(filters)
        in_filters = [f for f in filters if f[1] == "in"]

        if any(not f[2] for f in in_filters):
            return []

        id_filters = [f for f in filters if f[0] == "id"]
        if id_filters:
            # Document ids are not stored fields; fetch directly, then filter
            _, op, value = id_filters[0]
            candidates = self.get_many(value if op == "in" else [value], transaction=transaction)
            results = [
                record for record in candidates.values()
                if all(_record_matches(record, f) for f in filters)
            ]
        elif in_filters:
            # One "in" clause per query; further ones are applied in Python
            field, _, values = in_filters[0]
            values = list(dict.fromkeys(values))
            rest = [f for f in filters if f is not in_filters[0]]
            extra_in = [f for f in rest if f[1] == "in"]
            base = [f for f in rest if f[1] != "in"]

            records = {}
            for start in range(0, len(values), IN_QUERY_LIMIT):
                chunk = values[start:start + IN_QUERY_LIMIT]
                for snapshot in self._query(base + [(field, "in", chunk)]).stream(transaction=transaction):
                    records[snapshot.id] = self._to_record(snapshot)
            results = [
                record for record in records.values()
                if all(_record_matches(record, f) for f in extra_in)
            ]
        else:
            fetch_limit = None if order_by else limit
            results = [
                self._to_record(snapshot)
                for snapshot in self._query(filters, fetch_limit).stream(transaction=transaction)
            ]

        _sort_records(results, order_by)
        if limit:
            results = results[:limit]
        return results

    def find_one(self, filters: Sequence[Filter]) -> Optional[dict]:
        records = self.find(filters, limit=1)
        return records[0] if records else None

    def exists(self, filters: Sequence[Filter]) -> bool:
        return self.find_one(filters) is not None

    def count(self, filters: Sequence[Filter] = ()) -> int:
        return len(self.find(filters))

    def create(self, data: Dict[str, Any], doc_id: Optional[str] = None) -> dict:
        """Insert a new document and return it with its generated id."""
        doc_ref = self.collection.document(doc_id) if doc_id else self.collection.document()
        payload = {key: value for key, value in data.items() if key != "id"}
        doc_ref.set(payload)
        return {**payload, "id": doc_ref.id}

    def update(self, doc_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        """Apply a partial update; returns None if the document is gone."""
        doc_ref = self.collection.document(doc_id)
        if not doc_ref.get().exists:
            return None
        if fields:
            doc_ref.update({key: value for key, value in fields.items() if key != "id"})
        return self.get(doc_id)

    def delete(self, doc_id: str) -> bool:
        doc_ref = self.collection.document(doc_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def ref(self, doc_id: Optional[str] = None):
        """
        Document reference, for callers assembling a batch or transaction.
        Without doc_id a reference with a fresh id is returned.
        """
        return self.collection.document(doc_id) if doc_id else self.collection.document()

    def populate(
        self,
        records: List[dict],
        field: str,
        fields: Sequence[str] = ("name", "code"),
    ) -> List[dict]:
        """
        Replace reference ids in records[field] with display objects
        from this collection: {"id": ..., <fields>}. Works for single ids
        and lists of ids. Dangling single references become None and
        dangling list entries are dropped.
        """
        def ids_of(value):
            return value if isinstance(value, list) else [value]

        related = self.get_many(
            ref_id for record in records for ref_id in ids_of(record.get(field))
        )

        def expand(ref_id):
            target = related.get(ref_id)
            if target is None:
                return None
            return {"id": ref_id, **{name: target.get(name) for name in fields}}

        for record in records:
            value = record.get(field)
            if isinstance(value, list):
                record[field] = [item for item in map(expand, value) if item]
            elif value:
                record[field] = expand(value)
        return records


class PortalStores:
    """One DocumentStore per portal collection, sharing a client."""

    def __init__(self, firestore_db=None):
        db = firestore_db or config.get_db()
        self.db = db
        self.users = DocumentStore(USERS, db)
        self.departments = DocumentStore(DEPARTMENTS, db)
        self.subjects = DocumentStore(SUBJECTS, db)
        self.chapters = DocumentStore(CHAPTERS, db)
        self.content = DocumentStore(CONTENT, db)

    def batch(self):
        """Write batch spanning all portal collections; apply with commit()."""
        return self.db.batch()

    def transaction(self, work: Callable, *args):
        """Run work(transaction, *args) atomically; see run_transaction()."""
        return run_transaction(self.db, work, *args)


def get_stores() -> PortalStores:
    """Dependency for getting the portal stores."""
    return PortalStores()
