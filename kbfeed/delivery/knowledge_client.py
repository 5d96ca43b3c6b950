"""
Knowledge Base Client
=====================

Submits documents to an Open WebUI compatible knowledge-base service:

1. ``POST {endpoint}/v1/files/``: multipart upload, answers ``{"id": ...}``
2. ``POST {endpoint}/v1/knowledge/{kb_id}/file/add``: links the file

The two calls are not atomic. If linking fails the uploaded file stays on the
service unlinked; nothing here tries to delete it.
"""

from typing import Optional

import requests

from kbfeed.config.settings import KnowledgeServiceSettings, LimitsSettings
from kbfeed.database.models import RemoteFileHandle
from kbfeed.utils.logging import get_logger_for_component
from kbfeed.utils.exceptions import SubmissionError, ErrorCode


class KnowledgeBaseClient:
    """HTTP client for file upload and knowledge-base linking."""

    def __init__(
        self,
        service: KnowledgeServiceSettings,
        limits: Optional[LimitsSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize knowledge base client.

        Args:
            service: API endpoint and token
            limits: Network settings (timeout)
            session: HTTP session; created if omitted
        """
        self.service = service
        self.limits = limits or LimitsSettings()
        self.session = session or requests.Session()
        self.logger = get_logger_for_component("knowledge_client")

    @property
    def files_url(self) -> str:
        return f"{self.service.api_endpoint}/v1/files/"

    def knowledge_add_url(self, knowledge_base_id: str) -> str:
        return f"{self.service.api_endpoint}/v1/knowledge/{knowledge_base_id}/file/add"

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.service.api_token}"}

    def upload_file(self, file_name: str, payload: bytes) -> RemoteFileHandle:
        """Upload a document and return its remote file id.

        Raises:
            SubmissionError: On network failure or a response without a usable ``id``
        """
        headers = {**self._auth_headers(), "Accept": "application/json"}

        try:
            response = self.session.post(
                self.files_url,
                headers=headers,
                files={"file": (file_name, payload)},
                timeout=self.limits.request_timeout,
            )
        except requests.RequestException as e:
            raise SubmissionError(
                f"File upload failed: {e}",
                stage="upload",
                error_code=ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise SubmissionError(
                f"File upload returned non-JSON body (HTTP {response.status_code})",
                stage="upload",
                status_code=response.status_code,
                error_code=ErrorCode.EXTERNAL_INVALID_RESPONSE,
            ) from e

        file_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(file_id, str) or not file_id:
            raise SubmissionError(
                f"File upload response has no file id (HTTP {response.status_code})",
                stage="upload",
                status_code=response.status_code,
                error_code=ErrorCode.EXTERNAL_INVALID_RESPONSE,
            )

        self.logger.debug(f"Uploaded {file_name} as remote file {file_id}")
        return RemoteFileHandle(file_id=file_id)

    def link_file(self, knowledge_base_id: str, handle: RemoteFileHandle) -> None:
        """Add an uploaded file to a knowledge base.

        Raises:
            SubmissionError: On network failure or a non-200 response
        """
        try:
            response = self.session.post(
                self.knowledge_add_url(knowledge_base_id),
                headers=self._auth_headers(),
                json={"file_id": handle.file_id},
                timeout=self.limits.request_timeout,
            )
        except requests.RequestException as e:
            raise SubmissionError(
                f"Knowledge base link failed for file {handle.file_id}: {e}",
                stage="link",
                error_code=ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE,
                context={"file_id": handle.file_id, "knowledge_base_id": knowledge_base_id},
            ) from e

        if response.status_code != 200:
            raise SubmissionError(
                f"Knowledge base link for file {handle.file_id} returned HTTP {response.status_code}",
                stage="link",
                status_code=response.status_code,
                context={"file_id": handle.file_id, "knowledge_base_id": knowledge_base_id},
            )

    def submit(self, knowledge_base_id: str, file_name: str, payload: bytes) -> RemoteFileHandle:
        """Upload a document, then link it into the knowledge base."""
        handle = self.upload_file(file_name, payload)
        self.link_file(knowledge_base_id, handle)
        return handle
