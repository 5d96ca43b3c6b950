"""
Content Converter
=================

HTML to Markdown conversion for fetched documents. Tables are kept and
rendered, hyperlinks are reduced to their anchor text.
"""

from typing import Union

from trafilatura import extract

from kbfeed.database.models import ResolvedContent, ContentType
from kbfeed.utils.logging import get_logger_for_component
from kbfeed.utils.exceptions import ConvertError


class ContentConverter:
    """Converts fetched HTML into Markdown."""

    def __init__(self):
        self.logger = get_logger_for_component("content_converter")

    def html_to_markdown(self, html: Union[str, bytes]) -> str:
        """
        Convert an HTML document to Markdown.

        Raw bytes are passed through so the page's own charset is detected.

        Raises:
            ConvertError: If the converter fails or extracts nothing
        """
        try:
            markdown = extract(
                html,
                output_format="markdown",
                include_tables=True,
                include_links=False,
                include_comments=False,
            )
        except Exception as e:
            raise ConvertError(f"HTML to Markdown conversion failed: {e}") from e

        if not markdown or not markdown.strip():
            raise ConvertError("HTML to Markdown conversion produced no content")

        return markdown

    def normalize(self, content: ResolvedContent) -> ResolvedContent:
        """Convert HTML content to Markdown, renaming the file to ``.md``.

        Non-HTML content is returned unchanged.

        Raises:
            ConvertError: If conversion fails
        """
        if content.content_type != ContentType.HTML:
            return content

        markdown = self.html_to_markdown(content.payload)

        file_name = content.file_name
        if file_name.endswith(ContentType.HTML.extension):
            file_name = file_name[: -len(ContentType.HTML.extension)]
        file_name += ContentType.MARKDOWN.extension

        self.logger.debug(f"Converted HTML: {len(content.payload)} bytes -> {len(markdown)} chars")
        return ResolvedContent(
            payload=markdown.encode("utf-8"),
            content_type=ContentType.MARKDOWN,
            file_name=file_name,
        )
