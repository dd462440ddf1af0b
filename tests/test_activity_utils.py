"""Tests for file-name detection in inbound events."""

from app.models.inbound_event import Attachment, InboundEvent
from app.services.activity_utils import (
    decode_html_entities,
    get_attachment_file_name,
    get_file_name_from_event,
    get_uploaded_file_name,
    is_file_like_attachment,
)


def make_event(**fields):
    return InboundEvent.model_validate({"conversationId": "conv-1", **fields})


class TestAttachments:
    """Single attachment helpers."""

    def test_file_like_content_types(self):
        assert is_file_like_attachment(Attachment(contentType="application/vnd.microsoft.teams.file.download.info"))
        assert is_file_like_attachment(Attachment(contentType="application/vnd.microsoft.teams.file.something"))
        assert is_file_like_attachment(Attachment(contentType="text/html"))
        assert not is_file_like_attachment(Attachment(contentType="application/vnd.microsoft.card.adaptive"))
        assert not is_file_like_attachment(Attachment())

    def test_name_from_html_anchor(self):
        attachment = Attachment(
            contentType="text/html",
            content='<p><a href="https://x.sharepoint.com/f">Pump &amp; Valve.docx</a></p>',
        )

        assert get_attachment_file_name(attachment) == "Pump & Valve.docx"

    def test_name_from_html_title_attribute(self):
        attachment = Attachment(contentType="text/html", content='<img title="layout.pdf" src="x">')

        assert get_attachment_file_name(attachment) == "layout.pdf"

    def test_plain_html_message_has_no_file(self):
        attachment = Attachment(contentType="text/html", content="<p>hi there</p>")

        assert get_attachment_file_name(attachment) is None

    def test_name_from_content_object(self):
        attachment = Attachment(contentType="application/vnd.microsoft.teams.file.download.info", content={"item": {"name": "x.xlsx"}})

        assert get_attachment_file_name(attachment) == "x.xlsx"

    def test_decode_html_entities(self):
        assert decode_html_entities("a&nbsp;&lt;b&gt;&#39;c&#x2F;") == "a <b>'c/"


class TestEvents:
    """Event-level file detection."""

    def test_name_found_in_channel_data(self):
        event = make_event(channelData={"tenant": {"id": "t"}, "file": {"fileName": "spec.docx"}})

        assert get_file_name_from_event(event) == "spec.docx"
        assert get_uploaded_file_name(event) == "spec.docx"

    def test_channel_data_name_without_extension_is_ignored(self):
        event = make_event(channelData={"team": {"name": "Engineering"}})

        assert get_uploaded_file_name(event) is None

    def test_adaptive_card_attachment_is_not_an_upload(self):
        event = make_event(attachments=[{"contentType": "application/vnd.microsoft.card.adaptive", "content": {}}])

        assert get_uploaded_file_name(event) is None

    def test_inline_image_is_not_an_upload(self):
        event = make_event(text="look at this", attachments=[{"contentType": "image/png", "name": "photo.png"}])

        assert get_uploaded_file_name(event) is None
        assert get_file_name_from_event(event) == "photo.png"

    def test_inline_image_with_file_in_channel_data(self):
        event = make_event(
            attachments=[{"contentType": "image/png", "name": "photo.png"}],
            channelData={"file": {"name": "layout.pdf"}},
        )

        assert get_uploaded_file_name(event) == "layout.pdf"
