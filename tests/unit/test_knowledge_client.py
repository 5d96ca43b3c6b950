"""
Tests for the Knowledge Base Client
===================================

Upload and link calls against a Mock HTTP session.
"""

import pytest
import requests

from kbfeed.config.settings import KnowledgeServiceSettings, LimitsSettings
from kbfeed.database.models import RemoteFileHandle
from kbfeed.delivery.knowledge_client import KnowledgeBaseClient
from kbfeed.utils.exceptions import SubmissionError, ErrorCode


@pytest.fixture
def client(http_session):
    service = KnowledgeServiceSettings(api_endpoint="http://owui.test/api/", api_token="test-token")
    return KnowledgeBaseClient(service, LimitsSettings(), session=http_session)


class TestUpload:
    """POST {endpoint}/v1/files/"""

    def test_upload_success(self, client, http_session, http_response):
        http_session.post.return_value = http_response(json_data={"id": "file-1"})

        handle = client.upload_file("blog 2024-01-02 03:04:05 abcdef.md", b"# Hello")

        assert handle == RemoteFileHandle(file_id="file-1")
        args, kwargs = http_session.post.call_args
        assert args[0] == "http://owui.test/api/v1/files/"
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["files"] == {"file": ("blog 2024-01-02 03:04:05 abcdef.md", b"# Hello")}

    def test_upload_non_json(self, client, http_session, http_response):
        http_session.post.return_value = http_response(status_code=502, content=b"Bad Gateway")

        with pytest.raises(SubmissionError) as exc_info:
            client.upload_file("a.md", b"x")

        assert exc_info.value.stage == "upload"
        assert exc_info.value.status_code == 502
        assert exc_info.value.error_code == ErrorCode.EXTERNAL_INVALID_RESPONSE

    @pytest.mark.parametrize("body", [{}, {"id": 42}, {"id": ""}, ["file-1"]])
    def test_upload_without_usable_id(self, client, http_session, http_response, body):
        http_session.post.return_value = http_response(json_data=body)
        with pytest.raises(SubmissionError) as exc_info:
            client.upload_file("a.md", b"x")
        assert exc_info.value.stage == "upload"

    def test_upload_network_failure(self, client, http_session):
        http_session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(SubmissionError) as exc_info:
            client.upload_file("a.md", b"x")
        assert exc_info.value.error_code == ErrorCode.EXTERNAL_SERVICE_UNAVAILABLE


class TestLink:
    """POST {endpoint}/v1/knowledge/{kb}/file/add"""

    def test_link_success(self, client, http_session, http_response):
        http_session.post.return_value = http_response(status_code=200, json_data={})

        client.link_file("kb-blog", RemoteFileHandle(file_id="file-1"))

        args, kwargs = http_session.post.call_args
        assert args[0] == "http://owui.test/api/v1/knowledge/kb-blog/file/add"
        assert kwargs["json"] == {"file_id": "file-1"}
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"

    @pytest.mark.parametrize("status", [201, 400, 404, 500])
    def test_link_non_200(self, client, http_session, http_response, status):
        http_session.post.return_value = http_response(status_code=status)

        with pytest.raises(SubmissionError) as exc_info:
            client.link_file("kb-blog", RemoteFileHandle(file_id="file-1"))

        assert exc_info.value.stage == "link"
        assert exc_info.value.status_code == status
        assert exc_info.value.context["file_id"] == "file-1"


class TestSubmit:
    """Upload followed by link."""

    def test_submit_calls_both(self, client, http_session, http_response):
        http_session.post.side_effect = [
            http_response(json_data={"id": "file-9"}),
            http_response(status_code=200),
        ]

        handle = client.submit("kb-blog", "a.md", b"x")

        assert handle.file_id == "file-9"
        assert http_session.post.call_count == 2
        assert http_session.post.call_args_list[1][1]["json"] == {"file_id": "file-9"}

    def test_upload_failure_skips_link(self, client, http_session, http_response):
        http_session.post.return_value = http_response(json_data={"error": "nope"})

        with pytest.raises(SubmissionError):
            client.submit("kb-blog", "a.md", b"x")

        assert http_session.post.call_count == 1
