import hashlib
import hmac
import json
import logging

from multimail.mail.message import (
    Attachment,
    Message,
    message_from_mime,
    parse_address,
    split_addresses,
)
from multimail.mail.receivers.base import BaseReceiver

logger = logging.getLogger("multimail")


class MailgunReceiver(BaseReceiver):
    """
    Receiver for Mailgun inbound email webhooks.

    Mailgun POSTs inbound emails as multipart/form-data (or urlencoded when
    there are no attachments). Routes configured with ``forward()`` send the
    parsed fields; ``store(notify=...)`` URLs ending in ``mime`` send the full
    message in ``body-mime`` instead. Both are handled.

    Signature verification uses HMAC-SHA256 with the Mailgun API key.

    Expected POST fields:
        - from: Full From header (e.g. "Name <email@example.com>")
        - sender: Envelope sender
        - recipient: Envelope recipients
        - subject: Email subject
        - body-plain: Plain text body
        - body-html: HTML body
        - body-mime: Full MIME message (raw routes only)
        - message-headers: JSON-encoded list of [name, value] pairs
        - timestamp: Unix timestamp
        - token: Unique token
        - signature: HMAC signature
        - attachment-count: Number of attachments
        - attachment-N: Uploaded file attachments
    """

    required_options = ("mailgun_api_key",)
    credential_options = ("mailgun_api_key",)

    @property
    def name(self) -> str:
        return "mailgun"

    def is_valid(self, params) -> bool:
        """
        Verify the Mailgun webhook signature.

        The signature is an HMAC-SHA256 hex digest of:
            timestamp + token
        signed with the Mailgun API key.
        """
        timestamp = self.scalar(params, "timestamp", "")
        token = self.scalar(params, "token", "")
        signature = self.scalar(params, "signature", "")

        if not all(isinstance(v, str) and v for v in (timestamp, token, signature)):
            logger.warning("Mailgun webhook missing signature fields")
            return False

        expected = hmac.new(
            self.options["mailgun_api_key"].encode("utf-8"),
            f"{timestamp}{token}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

        return self.secure_compare(expected, signature)

    def transform(self, params) -> list[Message]:
        """Transform a Mailgun inbound webhook into a single Message."""
        raw_mime = self.scalar(params, "body-mime")
        if raw_mime:
            return [message_from_mime(raw_mime)]

        headers = self._parse_headers(params.get("message-headers", ""))
        header_values = {}
        for key, value in headers:
            header_values.setdefault(key.lower(), []).append(value)

        from_name, from_email = parse_address(self.scalar(params, "from", ""))
        # Fall back to "sender" field if "from" parsing gives empty email
        if not from_email:
            from_email = self.scalar(params, "sender", "")

        to = split_addresses(header_values.get("to")) or split_addresses(
            self.scalar(params, "recipient", "")
        )

        return [
            Message(
                from_email=from_email,
                from_name=from_name or None,
                to=to,
                cc=split_addresses(header_values.get("cc")),
                subject=self.scalar(params, "subject"),
                body_text=self.scalar(params, "body-plain"),
                body_html=self.scalar(params, "body-html"),
                headers=headers,
                attachments=self._collect_attachments(params),
            )
        ]

    def is_spam(self, message: Message) -> bool:
        return message.get_header("X-Mailgun-Sflag") == "Yes"

    @staticmethod
    def _parse_headers(raw_headers_json) -> list:
        if not raw_headers_json or not isinstance(raw_headers_json, str):
            return []
        try:
            header_pairs = json.loads(raw_headers_json)
        except ValueError:
            logger.warning("Mailgun webhook has malformed message-headers")
            return []
        if not isinstance(header_pairs, list):
            return []
        return [
            (h[0], h[1])
            for h in header_pairs
            if isinstance(h, (list, tuple)) and len(h) >= 2
        ]

    def _collect_attachments(self, params) -> list:
        try:
            attachment_count = int(self.scalar(params, "attachment-count", 0) or 0)
        except ValueError:
            attachment_count = 0

        attachments = []
        for i in range(1, attachment_count + 1):
            uploaded_file = self.scalar(params, f"attachment-{i}")
            if uploaded_file is None or isinstance(uploaded_file, str):
                continue
            attachments.append(
                Attachment(
                    filename=getattr(uploaded_file, "name", None) or f"attachment-{i}",
                    content_type=getattr(uploaded_file, "content_type", None)
                    or "application/octet-stream",
                    content=uploaded_file.read(),
                )
            )
        return attachments
