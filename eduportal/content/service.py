# service.py
# Business logic for content items

# Every content item satisfies
#   content.department == subject.department
#   content.chapter is None or chapter.subject == content.subject
# create checks both against the stored parents, update re-derives the
# department whenever the subject changes, and subject moves/chapter
# deletes elsewhere keep them true.
# Reads follow the content scope strictly. Writes go through
# OwnershipWalker.authorize_content, where the creator of an item keeps
# write access after being taken off the subject or after a subject move.
# A stored publicId always names a file the writer uploaded themselves
# (its path carries the uploader id), since delete removes that file.

# @see: access.py - ScopeResolver.content(), OwnershipWalker.authorize_content()
# @see: blob_store.py - the uploaded file is removed with the item

from typing import List, Optional

from eduportal.access import OwnershipWalker, ScopeResolver, ensure_visible
from eduportal.blob_store import owner_of
from eduportal.errors import Denied, Invalid, NotFound
from eduportal.logging_config import get_logger
from eduportal.models import ContentType, CurrentUser
from eduportal.store import PortalStores, utc_now
from eduportal.validators import validate_id

from .models import ContentCreate, ContentUpdate


logger = get_logger("content")


class ContentService:
    """Content CRUD bound to the subject hierarchy."""

    def __init__(self, stores: PortalStores, blobs=None):
        self.stores = stores
        self.content = stores.content
        self.blobs = blobs
        self.resolver = ScopeResolver(stores)
        self.walker = OwnershipWalker(stores)

    def _subject(self, subject_id: str) -> dict:
        validate_id(subject_id, "subject id")
        subject = self.stores.subjects.get(subject_id)
        if subject is None:
            raise NotFound("Subject not found")
        return subject

    def _chapter_of(self, chapter_id: Optional[str], subject_id: str) -> Optional[str]:
        if not chapter_id:
            return None
        validate_id(chapter_id, "chapter id")
        chapter = self.stores.chapters.get(chapter_id)
        if chapter is None:
            raise NotFound("Chapter not found")
        if chapter.get("subject") != subject_id:
            raise Invalid("Chapter does not belong to the specified subject")
        return chapter_id

    def _check_file(
        self,
        actor: CurrentUser,
        file_url: Optional[str],
        public_id: Optional[str],
        previous: Optional[str] = None,
    ) -> None:
        if not public_id:
            return
        if public_id != previous and owner_of(public_id) != actor.id:
            raise Denied("Not authorized to use a file uploaded by another user")
        if not (file_url or "").endswith("/" + public_id):
            raise Invalid("fileUrl does not match publicId")

    def populate(self, records: List[dict]) -> List[dict]:
        self.stores.departments.populate(records, "department", ("name", "code"))
        self.stores.subjects.populate(records, "subject", ("name", "code"))
        self.stores.chapters.populate(records, "chapter", ("title", "order"))
        self.stores.users.populate(records, "createdBy", ("name", "email"))
        return records

    def list(
        self,
        actor: CurrentUser,
        department: Optional[str] = None,
        subject: Optional[str] = None,
        chapter: Optional[str] = None,
        semester: Optional[int] = None,
        year: Optional[int] = None,
        content_type: Optional[ContentType] = None,
    ) -> List[dict]:
        """
        Content visible to the actor, newest first, references populated.

        Raises:
            Invalid: Malformed filter id
            Denied: Explicit department or subject outside the actor's scope
        """
        scope = self.resolver.content(actor)
        filters = scope.filters()
        for field, value in (("department", department), ("subject", subject), ("chapter", chapter)):
            if not value:
                continue
            validate_id(value, f"{field} id")
            if not scope.permits(field, value):
                raise Denied(f"Not authorized to view content for this {field}")
            filters.append((field, "==", value))
        if semester is not None:
            filters.append(("semester", "==", semester))
        if year is not None:
            filters.append(("year", "==", year))
        if content_type is not None:
            filters.append(("contentType", "==", ContentType(content_type).value))

        return self.populate(self.content.find(filters, order_by=["-createdAt"]))

    def list_public(
        self,
        department: Optional[str] = None,
        subject: Optional[str] = None,
        content_type: Optional[ContentType] = None,
    ) -> List[dict]:
        filters = []
        if department:
            filters.append(("department", "==", validate_id(department, "department id")))
        if subject:
            filters.append(("subject", "==", validate_id(subject, "subject id")))
        if content_type is not None:
            filters.append(("contentType", "==", ContentType(content_type).value))
        records = self.content.find(filters, order_by=["-createdAt"])
        return self.stores.subjects.populate(records, "subject", ("name", "code", "department"))

    def get(self, actor: CurrentUser, content_id: str) -> dict:
        validate_id(content_id, "content id")
        record = ensure_visible(
            self.resolver.content(actor),
            self.content.get(content_id),
            "Content",
        )
        return self.populate([record])[0]

    def _writable(self, actor: CurrentUser, content_id: str) -> dict:
        validate_id(content_id, "content id")
        record = self.content.get(content_id)
        if record is None:
            raise NotFound("Content not found")
        self.walker.authorize_content(actor, record)
        return record

    def create(self, actor: CurrentUser, data: ContentCreate) -> dict:
        """
        Raises:
            Invalid: Malformed ids, department/chapter inconsistent with the
                subject, or a fileUrl that does not point at publicId
            NotFound: Department, subject or chapter does not exist
            Denied: Actor may not add content to the subject, or publicId
                names a file someone else uploaded
        """
        validate_id(data.department, "department id")
        if self.stores.departments.get(data.department) is None:
            raise NotFound("Department not found")
        subject = self._subject(data.subject)
        if subject.get("department") != data.department:
            raise Invalid("Subject does not belong to the specified department")
        chapter = self._chapter_of(data.chapter, data.subject)
        self.walker.authorize_subject_content(actor, subject)
        self._check_file(actor, data.fileUrl, data.publicId)

        now = utc_now()
        record = self.content.create({
            "title": data.title,
            "description": data.description,
            "department": data.department,
            "subject": data.subject,
            "chapter": chapter,
            "semester": data.semester,
            "year": data.year,
            "contentType": data.contentType.value,
            "fileUrl": data.fileUrl,
            "publicId": data.publicId,
            "createdBy": actor.id,
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info(
            "Content %s (%s) added to subject %s by %s",
            record["id"], record["contentType"], data.subject, actor.id,
        )
        return record

    def update(self, actor: CurrentUser, content_id: str, data: ContentUpdate) -> dict:
        record = self._writable(actor, content_id)
        fields = data.model_dump(exclude_unset=True)
        fields = {
            key: value for key, value in fields.items()
            if value is not None or key in ("chapter", "publicId")
        }
        if not fields:
            return self.populate([record])[0]

        subject_id = fields.get("subject", record.get("subject"))
        if subject_id != record.get("subject"):
            subject = self._subject(subject_id)
            try:
                self.walker.authorize_subject_content(actor, subject)
            except Denied as exc:
                raise Denied("Not authorized to move content to this subject") from exc
            fields["department"] = subject.get("department")
            # An old chapter cannot follow the item into another subject
            fields.setdefault("chapter", None)
            logger.info("Content %s moved to subject %s by %s", content_id, subject_id, actor.id)
        if "chapter" in fields:
            fields["chapter"] = self._chapter_of(fields["chapter"], subject_id)
        if "fileUrl" in fields or "publicId" in fields:
            self._check_file(
                actor,
                fields.get("fileUrl", record.get("fileUrl")),
                fields.get("publicId", record.get("publicId")),
                previous=record.get("publicId"),
            )
        if "contentType" in fields:
            fields["contentType"] = ContentType(fields["contentType"]).value
        fields["updatedAt"] = utc_now()

        updated = self.content.update(content_id, fields)
        if updated is None:
            raise NotFound("Content not found")
        return self.populate([updated])[0]

    def delete(self, actor: CurrentUser, content_id: str) -> None:
        record = self._writable(actor, content_id)
        self.content.delete(content_id)
        logger.info("Content %s deleted by %s", content_id, actor.id)

        blob_path = record.get("publicId")
        if blob_path and owner_of(blob_path) is None:
            logger.warning("Not removing file %s for content %s: unrecognised path", blob_path, content_id)
        elif blob_path and self.blobs is not None:
            # The record is gone either way; a leftover file is only logged
            try:
                self.blobs.delete(blob_path)
            except Exception as exc:
                logger.warning("Could not remove file %s for content %s: %s", blob_path, content_id, exc)
