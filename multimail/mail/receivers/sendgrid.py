import json
import logging
from email.parser import HeaderParser

from multimail.mail.message import Attachment, Message, parse_address, split_addresses
from multimail.mail.receivers.base import BaseReceiver

logger = logging.getLogger("multimail")

SPAM_SCORE_HEADER = "X-SendGrid-Spam-Score"


class SendGridReceiver(BaseReceiver):
    """
    Receiver for the SendGrid Inbound Parse webhook.

    SendGrid POSTs multipart/form-data with the message already parsed.
    Inbound Parse requests are not signed.

    Expected POST fields:
        - headers: Raw header block of the original message
        - from / to / cc: Address headers
        - subject: Email subject
        - text / html: Message bodies
        - spam_score: SpamAssassin score, when spam checking is enabled
        - attachments: Number of attachments
        - attachment-info: JSON object describing each attachmentN field
        - attachmentN: Uploaded file attachments
    """

    recognized_options = ("spam_score_threshold",)

    @property
    def name(self) -> str:
        return "sendgrid"

    def transform(self, params) -> list[Message]:
        headers = self._parse_headers(self.scalar(params, "headers", ""))
        spam_score = self.scalar(params, "spam_score")
        if spam_score:
            headers.append((SPAM_SCORE_HEADER, spam_score))

        from_name, from_email = parse_address(self.scalar(params, "from", ""))

        return [
            Message(
                from_email=from_email,
                from_name=from_name or None,
                to=split_addresses(params.get("to")),
                cc=split_addresses(params.get("cc")),
                subject=self.scalar(params, "subject"),
                body_text=self.scalar(params, "text"),
                body_html=self.scalar(params, "html"),
                headers=headers,
                attachments=self._collect_attachments(params),
            )
        ]

    def is_spam(self, message: Message) -> bool:
        return self.spam_score_above_threshold(message, SPAM_SCORE_HEADER)

    @staticmethod
    def _parse_headers(raw_headers) -> list:
        if not raw_headers:
            return []
        return list(HeaderParser().parsestr(raw_headers).items())

    def _collect_attachments(self, params) -> list:
        try:
            count = int(self.scalar(params, "attachments", 0) or 0)
        except ValueError:
            count = 0

        try:
            info = json.loads(self.scalar(params, "attachment-info", "") or "{}")
        except ValueError:
            logger.warning("SendGrid webhook has malformed attachment-info")
            info = {}

        attachments = []
        for i in range(1, count + 1):
            key = f"attachment{i}"
            uploaded_file = self.scalar(params, key)
            if uploaded_file is None or isinstance(uploaded_file, str):
                continue
            details = info.get(key) or {}
            attachments.append(
                Attachment(
                    filename=details.get("filename")
                    or getattr(uploaded_file, "name", None)
                    or key,
                    content_type=details.get("type")
                    or getattr(uploaded_file, "content_type", None)
                    or "application/octet-stream",
                    content=uploaded_file.read(),
                )
            )
        return attachments
