import base64
import binascii
import logging

from multimail.exceptions import InvalidMessage
from multimail.mail.message import Attachment, Message, split_addresses
from multimail.mail.receivers.base import BaseReceiver

logger = logging.getLogger("multimail")


class PostmarkReceiver(BaseReceiver):
    """
    Receiver for Postmark inbound email webhooks.

    Postmark sends inbound emails as JSON POST requests. It does not sign
    inbound webhooks; requests are authenticated by the secrecy of the
    webhook URL (see the WEBHOOK_TOKEN setting).

    Expected JSON fields:
        - FromFull: { Email, Name }
        - ToFull / CcFull / BccFull: [{ Email, Name }]
        - Subject: string
        - TextBody: plain text body
        - HtmlBody: HTML body
        - MessageID: Postmark message ID
        - Headers: [{ Name, Value }]
        - Attachments: [{ Name, ContentType, ContentLength, Content (base64) }]
    """

    @property
    def name(self) -> str:
        return "postmark"

    def transform(self, params) -> list[Message]:
        """Transform a Postmark inbound webhook JSON payload into a Message."""
        from_full = params.get("FromFull")
        if not isinstance(from_full, dict):
            from_full = {}
        from_email = from_full.get("Email") or params.get("From", "")
        from_name = from_full.get("Name") or params.get("FromName") or None

        headers = []
        for header in self.expect(params.get("Headers") or [], list, "Headers"):
            self.expect(header, dict, "Headers entry")
            headers.append((header.get("Name", ""), header.get("Value")))

        return [
            Message(
                from_email=from_email,
                from_name=from_name,
                to=self._addresses(params, "To"),
                cc=self._addresses(params, "Cc"),
                bcc=self._addresses(params, "Bcc"),
                subject=params.get("Subject"),
                body_text=params.get("TextBody"),
                body_html=params.get("HtmlBody"),
                headers=headers,
                attachments=self._collect_attachments(params),
            )
        ]

    def is_spam(self, message: Message) -> bool:
        return message.get_header("X-Spam-Status") == "Yes"

    def _addresses(self, params, field) -> list:
        full = params.get(f"{field}Full")
        if full:
            entries = self.expect(full, list, f"{field}Full")
            return [
                entry["Email"]
                for entry in entries
                if self.expect(entry, dict, f"{field}Full entry").get("Email")
            ]
        return split_addresses(params.get(field))

    def _collect_attachments(self, params) -> list:
        # Postmark sends base64-encoded content
        attachments = []
        for att in self.expect(params.get("Attachments") or [], list, "Attachments"):
            self.expect(att, dict, "Attachments entry")
            try:
                content = base64.b64decode(
                    self.expect(att.get("Content") or "", str, "attachment Content"),
                    validate=True,
                )
            except binascii.Error as exc:
                raise InvalidMessage(
                    f"Attachment {att.get('Name')!r} is not valid base64"
                ) from exc
            attachments.append(
                Attachment(
                    filename=att.get("Name") or "unnamed",
                    content_type=att.get("ContentType") or "application/octet-stream",
                    content=content,
                )
            )
        return attachments
