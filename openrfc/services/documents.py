"""
RFC document service: creation, versioned content changes, status
transitions and text replacement.
"""

import logging
import uuid
from dataclasses import replace
from typing import Optional

from ..exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TextNotFoundError,
)
from ..models import (
    RFC,
    CreateRFCParams,
    ReplaceStringParams,
    RFCFilters,
    RFCStatus,
    utcnow,
)
from ..storage.base import Storage
from ..validation import (
    ValidationError,
    coerce_enum,
    validate_positive_int,
    validate_replace_string,
    validate_required,
    validate_rfc_create,
)
from .locks import KeyedLock

logger = logging.getLogger("openrfc.services.documents")


def version_key(rfc_id: str, version: int) -> str:
    """Identifier of one stored RFC version, used as previous_version_id."""
    return f"{rfc_id}-v{version}"


class DocumentService:
    def __init__(self, storage: Storage, locks: Optional[KeyedLock] = None):
        self.storage = storage
        self.locks = locks or KeyedLock()

    def create_rfc(self, params: CreateRFCParams) -> RFC:
        validate_rfc_create(params)

        now = utcnow()
        rfc = RFC(
            id=str(uuid.uuid4()),
            version=1,
            status=RFCStatus.DRAFT,
            title=params.title,
            content=params.content,
            author=params.author,
            requesting_user=params.requesting_user,
            created_at=now,
            updated_at=now,
        )
        created = self.storage.rfcs.create(rfc)
        logger.debug("Created RFC %s '%s'", created.id, created.title)
        return created

    def _require(self, rfc_id: str) -> RFC:
        validate_required(rfc_id, "rfc_id")
        rfc = self.storage.rfcs.get_by_id(rfc_id)
        if rfc is None:
            raise NotFoundError(
                f"RFC with id {rfc_id} not found", resource="rfc", resource_id=rfc_id
            )
        return rfc

    def _write_new_version(self, current: RFC, content: str) -> RFC:
        new_version = replace(
            current,
            version=current.version + 1,
            content=content,
            updated_at=utcnow(),
            previous_version_id=version_key(current.id, current.version),
        )
        updated = self.storage.rfcs.update(new_version)
        logger.debug("RFC %s advanced to version %d", updated.id, updated.version)
        return updated

    def update_content(
        self, rfc_id: str, content: str, expected_version: Optional[int] = None
    ) -> RFC:
        """
        Store content as a new version; the previous version stays readable.

        With expected_version set, the write only happens if the RFC is still
        at that version. Otherwise ConflictError carries the current version.
        """
        if content is None or not isinstance(content, str):
            raise ValidationError("content must be a string", field="content", value=content)
        with self.locks.hold(("rfc", rfc_id)):
            current = self._require(rfc_id)
            if expected_version is not None and current.version != expected_version:
                raise ConflictError(
                    f"RFC {rfc_id} is at version {current.version}, "
                    f"expected version {expected_version}",
                    current_version=current.version,
                )
            return self._write_new_version(current, content)

    def update_status(self, rfc_id: str, status: RFCStatus) -> RFC:
        """Move the RFC to status. The version number is left unchanged."""
        status = coerce_enum(status, RFCStatus, "status")
        with self.locks.hold(("rfc", rfc_id)):
            current = self._require(rfc_id)
            if not current.can_transition_to(status):
                raise InvalidTransitionError(
                    current.status, status, current_version=current.version
                )
            updated = self.storage.rfcs.update(
                replace(current, status=status, updated_at=utcnow())
            )
        logger.debug(
            "RFC %s status %s -> %s", rfc_id, current.status.value, status.value
        )
        return updated

    def replace_string(self, params: ReplaceStringParams) -> RFC:
        """
        Replace old_text in the current content and store the result as a new
        version. Only the first occurrence is replaced unless replace_all is set.

        Raises:
            TextNotFoundError: old_text does not occur; nothing is written.
        """
        validate_replace_string(params)
        with self.locks.hold(("rfc", params.rfc_id)):
            current = self._require(params.rfc_id)
            index = current.content.find(params.old_text)
            if index == -1:
                raise TextNotFoundError(
                    f'String "{params.old_text}" not found in RFC {params.rfc_id} content',
                    rfc_id=params.rfc_id,
                    text=params.old_text,
                )

            if params.replace_all:
                content = params.new_text.join(current.content.split(params.old_text))
            else:
                content = (
                    current.content[:index]
                    + params.new_text
                    + current.content[index + len(params.old_text):]
                )
            return self._write_new_version(current, content)

    def validate_string_exists(self, rfc_id: str, text: str) -> bool:
        """True if text occurs in the current content; False if the RFC is unknown."""
        if not rfc_id or text is None:
            return False
        rfc = self.storage.rfcs.get_by_id(rfc_id)
        if rfc is None:
            return False
        return text in rfc.content

    def count_occurrences(self, rfc_id: str, text: str) -> int:
        """Non-overlapping occurrences of text in the current content."""
        rfc = self._require(rfc_id)
        if not text:
            return 0
        return rfc.content.count(text)

    def get_rfc(self, rfc_id: str) -> Optional[RFC]:
        return self.storage.rfcs.get_by_id(rfc_id)

    def get_rfc_version(self, rfc_id: str, version: int) -> Optional[RFC]:
        validate_positive_int(version, "version")
        return self.storage.rfcs.get_by_version(rfc_id, version)

    def list_rfcs(self, filters: Optional[RFCFilters] = None) -> list[RFC]:
        return self.storage.rfcs.list(filters)
