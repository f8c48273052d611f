"""Tests for promoting resource tool results to attachments."""

import json

import pytest

from wingman.service.chat import AttachmentType, parse_resource
from wingman.service.chat.resource import SUCCESSFUL_RESULT, resource_name


def resource(**fields) -> str:
    return json.dumps({"type": "resource", "resource": fields})


class TestParseResource:
    """Tests for parse_resource."""

    def test_text_resource(self):
        parsed = parse_resource(
            resource(uri="file:///notes/todo.md", mimeType="text/markdown", text="- buy milk")
        )

        assert parsed.content == SUCCESSFUL_RESULT
        attachment = parsed.attachments[0]
        assert attachment.type == AttachmentType.TEXT
        assert attachment.name == "todo.md"
        assert attachment.data == "- buy milk"

    def test_pdf_blob_is_file(self):
        parsed = parse_resource(
            resource(uri="file:///docs/report.pdf", mimeType="application/pdf", blob="JVBERi0=")
        )

        attachment = parsed.attachments[0]
        assert attachment.type == AttachmentType.FILE
        assert attachment.data == "data:application/pdf;base64,JVBERi0="

    def test_ui_uri_keeps_full_name_and_meta(self):
        parsed = parse_resource(
            json.dumps(
                {
                    "type": "resource",
                    "resource": {
                        "uri": "ui://widgets/chart",
                        "mimeType": "text/html",
                        "text": "<div></div>",
                        "_meta": {"height": 300},
                    },
                }
            )
        )

        attachment = parsed.attachments[0]
        assert attachment.name == "ui://widgets/chart"
        assert attachment.meta == {"height": 300}

    @pytest.mark.parametrize(
        "data",
        [
            "plain text result",
            json.dumps({"type": "text", "text": "hi"}),
            json.dumps({"type": "resource", "resource": "nope"}),
            json.dumps({"type": "resource", "resource": {"uri": "x", "mimeType": "text/plain"}}),
            json.dumps({"type": "resource", "resource": {"uri": 1, "mimeType": "a", "text": "b"}}),
            json.dumps([1, 2, 3]),
        ],
    )
    def test_non_resources_pass_through(self, data):
        parsed = parse_resource(data)

        assert parsed.content == data
        assert parsed.attachments == []


class TestResourceName:
    def test_last_path_segment(self):
        assert resource_name("https://example.com/files/data.csv", "text/csv") == "data.csv"

    def test_extension_from_mime_type(self):
        assert resource_name("https://example.com/files/latest", "image/png") == "resource.png"

    def test_unknown_mime_type(self):
        assert resource_name("memory://blob", "application/x-unknown-thing") == "resource.bin"
