# service.py
# Business logic for chapters

# Chapters of one subject carry a dense "order" sequence 1..N.
# - create appends at max(order) + 1
# - delete removes the chapter and renumbers the remaining siblings to 1..N
# - reorder validates the whole request first, then writes every new order
# Each of these reads the siblings and writes inside one Firestore
# transaction; a concurrent change to a sibling makes the commit retry
# against fresh data.

# @see: access.py - ScopeResolver.chapters(), OwnershipWalker.authorize_chapter()

from typing import Dict, List, Optional

from eduportal.access import OwnershipWalker, ScopeResolver, ensure_visible
from eduportal.errors import Denied, Invalid, NotFound
from eduportal.logging_config import get_logger
from eduportal.models import CurrentUser
from eduportal.store import PortalStores, utc_now
from eduportal.validators import validate_id

from .models import ChapterCreate, ChapterUpdate, ReorderRequest


logger = get_logger("chapters")


class ChapterService:
    """Chapter CRUD and ordering under a subject."""

    def __init__(self, stores: PortalStores):
        self.stores = stores
        self.chapters = stores.chapters
        self.resolver = ScopeResolver(stores)
        self.walker = OwnershipWalker(stores)

    def _siblings(self, subject_id: str, transaction=None) -> List[dict]:
        return self.chapters.find(
            [("subject", "==", subject_id)],
            order_by=["order", "createdAt"],
            transaction=transaction,
        )

    def list(
        self,
        actor: CurrentUser,
        subject: Optional[str] = None,
        upload: bool = False,
        populate: bool = False,
    ) -> List[dict]:
        scope = self.resolver.chapters(actor, upload=upload)
        filters = scope.filters()
        if subject:
            validate_id(subject, "subject id")
            if not scope.permits("subject", subject):
                raise Denied("Not authorized to view chapters for this subject")
            filters.append(("subject", "==", subject))

        records = self.chapters.find(filters, order_by=["subject", "order"])
        if populate:
            self.stores.subjects.populate(records, "subject", ("name", "code"))
        return records

    def get(self, actor: CurrentUser, chapter_id: str, upload: bool = False) -> dict:
        validate_id(chapter_id, "chapter id")
        return ensure_visible(
            self.resolver.chapters(actor, upload=upload),
            self.chapters.get(chapter_id),
            "Chapter",
        )

    def create(self, actor: CurrentUser, data: ChapterCreate) -> dict:
        validate_id(data.subject, "subject id")
        subject = self.stores.subjects.get(data.subject)
        if subject is None:
            raise NotFound("Subject not found")
        self.walker.authorize_subject_content(actor, subject)

        now = utc_now()
        record = self.stores.transaction(self._append, data.subject, {
            "title": data.title,
            "description": data.description,
            "subject": data.subject,
            "learningOutcomes": [item.strip() for item in data.learningOutcomes if item.strip()],
            "isActive": data.isActive,
            "createdBy": actor.id,
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info("Chapter %s created at position %s by %s", record["id"], record["order"], actor.id)
        return record

    def _append(self, transaction, subject_id: str, fields: dict) -> dict:
        orders = [chapter.get("order") or 0 for chapter in self._siblings(subject_id, transaction)]
        ref = self.chapters.ref()
        payload = {**fields, "order": max(orders, default=0) + 1}
        transaction.set(ref, payload)
        return {**payload, "id": ref.id}

    def update(self, actor: CurrentUser, chapter_id: str, data: ChapterUpdate) -> dict:
        chapter = self.get(actor, chapter_id)
        self.walker.authorize_chapter(actor, chapter)

        fields = data.model_dump(exclude_none=True)
        if "learningOutcomes" in fields:
            fields["learningOutcomes"] = [
                item.strip() for item in fields["learningOutcomes"] if item.strip()
            ]
        if not fields:
            return chapter
        fields["updatedAt"] = utc_now()
        return self.chapters.update(chapter_id, fields)

    def delete(self, actor: CurrentUser, chapter_id: str) -> None:
        """Delete a chapter and close the gap in its siblings' order."""
        chapter = self.get(actor, chapter_id)
        self.walker.authorize_chapter(actor, chapter)

        remaining = self.stores.transaction(self._remove, chapter_id)
        logger.info("Chapter %s deleted by %s; %d siblings remain", chapter_id, actor.id, len(remaining))

    def _remove(self, transaction, chapter_id: str) -> List[dict]:
        # All reads come before the first write
        chapter = self.chapters.get(chapter_id, transaction=transaction)
        if chapter is None:
            raise NotFound("Chapter not found")
        remaining = [
            sibling for sibling in self._siblings(chapter.get("subject"), transaction)
            if sibling["id"] != chapter_id
        ]
        linked = self.stores.content.find([("chapter", "==", chapter_id)], transaction=transaction)

        now = utc_now()
        transaction.delete(self.chapters.ref(chapter_id))
        for position, sibling in enumerate(remaining, start=1):
            if sibling.get("order") != position:
                transaction.update(self.chapters.ref(sibling["id"]), {"order": position, "updatedAt": now})
        # Content keeps its subject but loses the chapter link
        for content in linked:
            transaction.update(self.stores.content.ref(content["id"]), {"chapter": None, "updatedAt": now})
        return remaining

    def reorder(self, actor: CurrentUser, request: ReorderRequest) -> List[dict]:
        """
        Apply new positions to chapters of one subject, all or nothing.

        Args:
            actor: Current user
            request: subjectId plus [{id, order}] pairs

        Returns:
            The subject's chapters in their new order

        Raises:
            Invalid: Malformed ids, duplicates, chapters of another subject,
                or a resulting order that is not exactly 1..N
            NotFound: Subject does not exist
            Denied: Actor may not edit the subject's chapters
        """
        subject_id = validate_id(request.subjectId, "subject id")
        for item in request.chapterOrders:
            validate_id(item.id, "chapter id")

        subject = self.stores.subjects.get(subject_id)
        if subject is None:
            raise NotFound("Subject not found")
        self.walker.authorize_subject_content(actor, subject)

        requested: Dict[str, int] = {}
        for item in request.chapterOrders:
            if item.id in requested:
                raise Invalid("Duplicate chapter in order array", details=item.id)
            requested[item.id] = item.order
        if len(set(requested.values())) != len(requested):
            raise Invalid("Duplicate order value in order array")

        changed = self.stores.transaction(self._apply_orders, subject_id, requested)
        if changed:
            logger.info("Reordered %d chapters of subject %s by %s", changed, subject_id, actor.id)
        return self._siblings(subject_id)

    def _apply_orders(self, transaction, subject_id: str, requested: Dict[str, int]) -> int:
        siblings = {chapter["id"]: chapter for chapter in self._siblings(subject_id, transaction)}
        if any(chapter_id not in siblings for chapter_id in requested):
            raise Invalid("One or more chapters do not belong to the specified subject")

        final = {chapter_id: chapter.get("order") for chapter_id, chapter in siblings.items()}
        final.update(requested)
        if sorted(final.values()) != list(range(1, len(final) + 1)):
            raise Invalid(
                "Chapter orders must form a sequence from 1 to the number of chapters",
                details=f"expected 1..{len(final)}",
            )

        now = utc_now()
        changed = 0
        for chapter_id, order in requested.items():
            if siblings[chapter_id].get("order") != order:
                transaction.update(self.chapters.ref(chapter_id), {"order": order, "updatedAt": now})
                changed += 1
        return changed
