import json

from multimail.exceptions import InvalidMessage
from multimail.mail.message import Message, parse_address, split_addresses
from multimail.mail.receivers.base import BaseReceiver


class MockReceiver(BaseReceiver):
    """
    Receiver for tests and local development.

    Accepts a flat payload in any of the supported shapes:

        - from, to, cc, bcc: Addresses (comma separated, or repeated fields)
        - subject, text, html
        - headers: JSON-encoded list of [name, value] pairs
        - spam: "true" to flag the message as spam
        - signature: Must equal the ``secret`` option, when one is set
    """

    recognized_options = ("secret",)

    @property
    def name(self) -> str:
        return "mock"

    def is_valid(self, params) -> bool:
        secret = self.options.get("secret")
        if not secret:
            return True
        return self.secure_compare(secret, self.scalar(params, "signature"))

    def transform(self, params) -> list[Message]:
        headers = []
        raw_headers = params.get("headers")
        if isinstance(raw_headers, str) and raw_headers:
            try:
                raw_headers = json.loads(raw_headers)
            except ValueError as exc:
                raise InvalidMessage("headers must be a JSON list of pairs") from exc
        for name, value in raw_headers or []:
            headers.append((name, value))
        if str(params.get("spam", "")).lower() == "true":
            headers.append(("X-Mock-Spam", "true"))

        from_name, from_email = parse_address(self.scalar(params, "from", ""))

        return [
            Message(
                from_email=from_email,
                from_name=from_name or None,
                to=split_addresses(params.get("to")),
                cc=split_addresses(params.get("cc")),
                bcc=split_addresses(params.get("bcc")),
                subject=self.scalar(params, "subject"),
                body_text=self.scalar(params, "text"),
                body_html=self.scalar(params, "html"),
                headers=headers,
            )
        ]

    def is_spam(self, message: Message) -> bool:
        return message.get_header("X-Mock-Spam") == "true"
