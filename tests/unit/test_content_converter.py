"""
Tests for HTML to Markdown conversion.
"""

from unittest.mock import patch

import pytest

from kbfeed.database.models import ResolvedContent, ContentType
from kbfeed.ingestion.content_converter import ContentConverter
from kbfeed.utils.exceptions import ConvertError, ErrorCode


class TestContentConverter:
    """ContentConverter with trafilatura patched out."""

    def setup_method(self):
        self.converter = ContentConverter()

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_html_to_markdown_options(self, mock_extract):
        mock_extract.return_value = "# Title\n\nBody"

        result = self.converter.html_to_markdown("<h1>Title</h1><p>Body</p>")

        assert result == "# Title\n\nBody"
        _, kwargs = mock_extract.call_args
        assert kwargs["output_format"] == "markdown"
        assert kwargs["include_tables"] is True
        assert kwargs["include_links"] is False

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_empty_result_fails(self, mock_extract):
        mock_extract.return_value = None
        with pytest.raises(ConvertError) as exc_info:
            self.converter.html_to_markdown("<html></html>")
        assert exc_info.value.error_code == ErrorCode.CONTENT_CONVERSION_FAILED

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_whitespace_result_fails(self, mock_extract):
        mock_extract.return_value = "  \n"
        with pytest.raises(ConvertError):
            self.converter.html_to_markdown("<html></html>")

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_converter_exception_wrapped(self, mock_extract):
        mock_extract.side_effect = RuntimeError("parser exploded")
        with pytest.raises(ConvertError) as exc_info:
            self.converter.html_to_markdown("<p>x</p>")
        assert "parser exploded" in str(exc_info.value)

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_normalize_html(self, mock_extract):
        mock_extract.return_value = "Converted text"
        content = ResolvedContent(
            payload=b"<p>Converted text</p>",
            content_type=ContentType.HTML,
            file_name="News 2024-01-02 03:04:05 abcdef.html",
        )

        result = self.converter.normalize(content)

        assert result.content_type == ContentType.MARKDOWN
        assert result.file_name == "News 2024-01-02 03:04:05 abcdef.md"
        assert result.payload == b"Converted text"
        mock_extract.assert_called_once()
        assert mock_extract.call_args[0][0] == b"<p>Converted text</p>"

    @pytest.mark.parametrize("content_type", [ContentType.PLAIN_TEXT, ContentType.MARKDOWN, ContentType.PDF])
    @patch("kbfeed.ingestion.content_converter.extract")
    def test_normalize_passes_other_types_through(self, mock_extract, content_type):
        content = ResolvedContent(
            payload=b"%PDF-1.4",
            content_type=content_type,
            file_name="News 2024-01-02 03:04:05 abcdef" + content_type.extension,
        )

        assert self.converter.normalize(content) is content
        mock_extract.assert_not_called()

    @patch("kbfeed.ingestion.content_converter.extract")
    def test_normalize_keeps_payload_bytes_undecoded(self, mock_extract):
        mock_extract.return_value = "Café"
        payload = '<html><head><meta charset="iso-8859-1"></head><body><p>Café</p></body></html>'.encode("latin-1")
        content = ResolvedContent(
            payload=payload,
            content_type=ContentType.HTML,
            file_name="Menu 2024-01-02 03:04:05 abcdef.html",
        )

        result = self.converter.normalize(content)

        assert mock_extract.call_args[0][0] is payload
        assert result.payload == "Café".encode("utf-8")


class TestRealConversion:
    """ContentConverter running the real trafilatura extractor."""

    ARTICLE = b"""<html><head><title>Release notes</title></head><body>
<article>
<h1>Release 2.0 is out</h1>
<p>This release brings a long list of improvements to the ingest engine,
covering parsing speed, memory use and the handling of malformed feeds.</p>
<p>Read <a href="https://x.example/a">the changelog</a> for all details about
the upgrade path and the deprecated options that were removed.</p>
<p>Existing installations keep working without changes to their configuration
files, although a few defaults were tuned for larger deployments.</p>
<table>
<tr><th>Name</th><th>Value</th></tr>
<tr><td>a</td><td>1</td></tr>
</table>
</article>
</body></html>"""

    def test_links_dropped_and_tables_kept(self):
        content = ResolvedContent(
            payload=self.ARTICLE,
            content_type=ContentType.HTML,
            file_name="News 2024-01-02 03:04:05 abcdef.html",
        )

        result = ContentConverter().normalize(content)
        text = result.payload.decode("utf-8")

        assert result.content_type == ContentType.MARKDOWN
        assert result.file_name.endswith(".md")
        assert "https://x.example/a" not in text
        assert "the changelog" in text
        assert "|" in text
        assert "Name" in text and "Value" in text
