import base64
import binascii

from multimail.exceptions import InvalidMessage
from multimail.mail.message import (
    Attachment,
    Message,
    decode_header_value,
    parse_address,
    split_addresses,
)
from multimail.mail.receivers.base import BaseReceiver


class CloudMailinReceiver(BaseReceiver):
    """
    Receiver for CloudMailin's JSON (normalized) HTTP POST format.

    Expected JSON fields:
        - headers: { Name: value or [values] }
        - envelope: { from, to, recipients }
        - plain / html: Message bodies
        - attachments: [{ file_name, content_type, content (base64) }]
    """

    @property
    def name(self) -> str:
        return "cloudmailin"

    def transform(self, params) -> list[Message]:
        headers = self._flatten_headers(params.get("headers"))
        envelope = params.get("envelope")
        if not isinstance(envelope, dict):
            envelope = {}

        def header_values(name):
            return [value for key, value in headers if key.lower() == name]

        from_name, from_email = parse_address(next(iter(header_values("from")), ""))
        if not from_email:
            from_email = envelope.get("from", "")

        to = split_addresses(header_values("to")) or split_addresses(envelope.get("to"))

        subject = next(iter(header_values("subject")), None)
        if subject is not None:
            subject = decode_header_value(subject)

        return [
            Message(
                from_email=from_email,
                from_name=from_name or None,
                to=to,
                cc=split_addresses(header_values("cc")),
                subject=subject,
                body_text=params.get("plain"),
                body_html=params.get("html"),
                headers=headers,
                attachments=self._collect_attachments(params),
            )
        ]

    @staticmethod
    def _flatten_headers(raw_headers) -> list:
        if not isinstance(raw_headers, dict):
            return []
        headers = []
        for key, value in raw_headers.items():
            if isinstance(value, list):
                headers.extend((key, v) for v in value)
            elif value is not None:
                headers.append((key, value))
        return headers

    def _collect_attachments(self, params) -> list:
        attachments = []
        for att in self.expect(params.get("attachments") or [], list, "attachments"):
            self.expect(att, dict, "attachment")
            try:
                content = base64.b64decode(
                    self.expect(att.get("content") or "", str, "attachment content"),
                    validate=True,
                )
            except binascii.Error as exc:
                raise InvalidMessage(
                    f"Attachment {att.get('file_name')!r} is not valid base64"
                ) from exc
            attachments.append(
                Attachment(
                    filename=att.get("file_name") or "unnamed",
                    content_type=att.get("content_type") or "application/octet-stream",
                    content=content,
                )
            )
        return attachments
