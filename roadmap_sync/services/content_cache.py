"""Content Cache & Upload Pipeline — per-resource free text backed by file storage.

Invariants:
    - A cached "" means "no content yet" and is a hit, distinct from absent
    - Content lives in the user's file named resource-<resource_id>.md
    - Save is always delete-then-recreate; no partial overwrite path
    - Any failing save step aborts with the first error and leaves the cache untouched
    - Cache written only after the backend confirms the upload

Design Decisions:
    - load_content is soft (None on failure): editors fall back to an empty,
      non-cached view and retry on next open
"""

import logging

from roadmap_sync.core.domain_types import Concept, resource_filename
from roadmap_sync.core.errors import (
    ErrorContext, RemoteFailureError, RoadmapError, returns_error,
)
from roadmap_sync.core.gateway_protocols import (
    BlobStorage, ConceptGateway, SessionContext,
)
from roadmap_sync.schemas.concepts import UploadedFile
from roadmap_sync.services.remote_calls import (
    require_action, require_field, require_query, require_user,
)

logger = logging.getLogger(__name__)


class ContentCache:
    """Owns content-by-resource-id."""

    def __init__(
        self,
        gateway: ConceptGateway,
        session: SessionContext,
        storage: BlobStorage,
        content_type: str = "text/markdown; charset=UTF-8",
    ):
        self._gateway = gateway
        self._session = session
        self._storage = storage
        self._content_type = content_type
        self._content: dict[str, str] = {}

    def cached(self, resource_id: str) -> str | None:
        return self._content.get(resource_id)

    def clear(self) -> None:
        self._content.clear()

    async def load_content(self, resource_id: str) -> str | None:
        if resource_id in self._content:
            return self._content[resource_id]
        try:
            content = await self._download(resource_id)
        except RoadmapError as e:
            logger.warning(
                f"Could not load content: {e.message}",
                extra={"resource_id": resource_id, "error_code": e.code},
            )
            return None
        self._content[resource_id] = content
        return content

    @returns_error
    async def save_content(self, resource_id: str, content: str) -> RoadmapError | None:
        owner = require_user(self._session)
        filename = resource_filename(resource_id)

        existing = await self._find_file(owner, filename)
        if existing is not None:
            await require_action(
                self._gateway, Concept.FILE_UPLOADING, "delete",
                {"file": existing.file},
            )

        requested = await require_action(
            self._gateway, Concept.FILE_UPLOADING, "requestUploadURL",
            {"owner": owner, "filename": filename},
        )
        file_id = require_field(
            requested, "file", Concept.FILE_UPLOADING, "requestUploadURL",
        )
        upload_url = require_field(
            requested, "uploadURL", Concept.FILE_UPLOADING, "requestUploadURL",
        )

        await self._storage.upload_text(upload_url, content, self._content_type)

        await require_action(
            self._gateway, Concept.FILE_UPLOADING, "confirmUpload",
            {"file": file_id},
        )
        self._content[resource_id] = content
        return None

    async def _download(self, resource_id: str) -> str:
        owner = require_user(self._session)
        found = await self._find_file(owner, resource_filename(resource_id))
        if found is None:
            return ""

        located = await require_query(
            self._gateway, Concept.FILE_UPLOADING, "_getDownloadURL",
            {"file": found.file},
        )
        url = located.first_value("downloadURL")
        if not url:
            raise RemoteFailureError(
                "No download URL for resource content",
                ErrorContext(
                    concept=Concept.FILE_UPLOADING.value, operation="_getDownloadURL",
                ),
            )
        return await self._storage.fetch_text(url)

    async def _find_file(self, owner: str, filename: str) -> UploadedFile | None:
        listed = await require_query(
            self._gateway, Concept.FILE_UPLOADING, "_getFilesByOwner",
            {"owner": owner},
        )
        return next(
            (f for f in listed.records(UploadedFile) if f.filename == filename),
            None,
        )
