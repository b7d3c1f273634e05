import base64
import binascii
import json
import logging

from multimail.exceptions import InvalidMessage
from multimail.mail.message import Attachment, Message
from multimail.mail.receivers.base import BaseReceiver

logger = logging.getLogger("multimail")

SPAM_SCORE_HEADER = "X-Mandrill-Spam-Score"


class MandrillReceiver(BaseReceiver):
    """
    Receiver for Mandrill inbound webhooks.

    Mandrill batches events: a single POST carries a ``mandrill_events``
    form field holding a JSON list, and every ``inbound`` event in it is one
    message. Messages are returned in the order Mandrill delivered them.

    Fields read from each event's ``msg``:
        - from_email / from_name: Sender
        - to / cc: [[email, name], ...]
        - subject: Email subject
        - text / html: Message bodies
        - headers: { Name: value or [values] }
        - attachments: { name: { name, type, content, base64 } }
        - spam_report: { score, matched_rules }
    """

    recognized_options = ("spam_score_threshold",)

    @property
    def name(self) -> str:
        return "mandrill"

    def is_valid(self, params) -> bool:
        """A request is valid if it carries a JSON list of events."""
        return self._events(params) is not None

    def transform(self, params) -> list[Message]:
        messages = []
        for event in self._events(params) or []:
            if not isinstance(event, dict):
                continue
            if event.get("event") != "inbound":
                logger.debug(f"Mandrill: skipping {event.get('event')!r} event")
                continue
            msg = self.expect(event.get("msg") or {}, dict, "inbound event msg")
            messages.append(self._transform_event(msg))
        return messages

    def is_spam(self, message: Message) -> bool:
        return self.spam_score_above_threshold(message, SPAM_SCORE_HEADER)

    def _events(self, params):
        raw_events = self.scalar(params, "mandrill_events")
        if not isinstance(raw_events, str):
            return None
        try:
            events = json.loads(raw_events)
        except ValueError:
            return None
        return events if isinstance(events, list) else None

    def _transform_event(self, msg) -> Message:
        headers = []
        for key, value in self.expect(msg.get("headers") or {}, dict, "msg headers").items():
            if isinstance(value, list):
                headers.extend((key, v) for v in value)
            elif value is not None:
                headers.append((key, value))

        spam_report = self.expect(msg.get("spam_report") or {}, dict, "spam_report")
        if spam_report.get("score") is not None:
            headers.append((SPAM_SCORE_HEADER, str(spam_report["score"])))

        return Message(
            from_email=msg.get("from_email", ""),
            from_name=msg.get("from_name") or None,
            to=self._addresses(msg.get("to"), "to"),
            cc=self._addresses(msg.get("cc"), "cc"),
            subject=msg.get("subject"),
            body_text=msg.get("text"),
            body_html=msg.get("html"),
            headers=headers,
            attachments=self._collect_attachments(msg),
        )

    def _addresses(self, entries, field) -> list:
        addresses = []
        for entry in self.expect(entries or [], list, field):
            self.expect(entry, list, f"{field} entry")
            if entry and entry[0]:
                addresses.append(entry[0])
        return addresses

    def _collect_attachments(self, msg) -> list:
        attachments = []
        for att in self.expect(msg.get("attachments") or {}, dict, "attachments").values():
            self.expect(att, dict, "attachment")
            content = self.expect(att.get("content") or "", str, "attachment content")
            if att.get("base64"):
                try:
                    data = base64.b64decode(content, validate=True)
                except binascii.Error as exc:
                    raise InvalidMessage(
                        f"Attachment {att.get('name')!r} is not valid base64"
                    ) from exc
            else:
                data = content.encode("utf-8")
            attachments.append(
                Attachment(
                    filename=att.get("name") or "unnamed",
                    content_type=att.get("type") or "application/octet-stream",
                    content=data,
                )
            )
        return attachments
