import email
from dataclasses import dataclass
from email import policy
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.utils import getaddresses, parseaddr
from typing import Optional

from multimail.exceptions import (
    MissingBody,
    MissingRecipients,
    MissingSender,
    MissingSubject,
)


@dataclass(frozen=True)
class Attachment:
    """A single file attachment, already decoded to raw bytes."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Message:
    """
    Normalized representation of an inbound email, independent of the
    provider that delivered it (Mailgun, Postmark, SendGrid, etc.).

    Headers are kept as an ordered tuple of (name, value) pairs with their
    raw values, so repeated headers survive. Use ``get_header`` and
    ``get_all_headers`` for case-insensitive, MIME-decoded lookups.

    Raises:
        MissingSender: If ``from_email`` is empty.
        MissingRecipients: If there is no to, cc or bcc address.
        MissingSubject: If ``subject`` is None.
        MissingBody: If neither a text nor an HTML body is given.
    """

    from_email: str
    to: tuple
    subject: str
    body_text: Optional[str] = None
    body_html: Optional[str] = None
    from_name: Optional[str] = None
    cc: tuple = ()
    bcc: tuple = ()
    headers: tuple = ()
    attachments: tuple = ()

    def __post_init__(self):
        for name in ("to", "cc", "bcc", "attachments"):
            value = getattr(self, name) or ()
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value))
        # Headers without a value are dropped
        object.__setattr__(
            self,
            "headers",
            tuple((str(k), str(v)) for k, v in self.headers or () if v is not None),
        )

        if not self.from_email or not self.from_email.strip():
            raise MissingSender("Message has no sender")
        if not (self.to or self.cc or self.bcc):
            raise MissingRecipients("Message has no recipients")
        if self.subject is None:
            raise MissingSubject("Message has no subject")
        if self.body_text is None and self.body_html is None:
            raise MissingBody("Message has no body")

    @property
    def body(self) -> str:
        """Return the best available body content (plain text preferred)."""
        return self.body_text or self.body_html or ""

    @property
    def recipients(self) -> tuple:
        return self.to + self.cc + self.bcc

    @property
    def message_id(self) -> Optional[str]:
        return self.get_header("Message-ID")

    @property
    def in_reply_to(self) -> Optional[str]:
        return self.get_header("In-Reply-To")

    @property
    def references(self) -> Optional[str]:
        return self.get_header("References")

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(key.lower() == lowered for key, _ in self.headers)

    def get_header(self, name: str, default=None):
        """Return the decoded value of the first header called ``name``."""
        values = self.get_all_headers(name)
        return values[0] if values else default

    def get_all_headers(self, name: str) -> list:
        """Return the decoded values of every header called ``name``, in order."""
        lowered = name.lower()
        return [
            decode_header_value(value)
            for key, value in self.headers
            if key.lower() == lowered
        ]


def decode_header_value(value: str) -> str:
    """Decode RFC 2047 encoded-words in a header value."""
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, UnicodeDecodeError, LookupError):
        return value


def parse_address(header_value: str) -> tuple:
    """
    Parse an address header like "John Doe <john@example.com>" into
    (name, email). Returns ("", "") for an empty value.
    """
    name, addr = parseaddr(decode_header_value(header_value or ""))
    return name, addr


def split_addresses(value) -> list:
    """
    Return the bare addresses in a comma separated header value or a list
    of such values, skipping empty entries.
    """
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    pairs = getaddresses([decode_header_value(str(v)) for v in value])
    return [addr for _, addr in pairs if addr]


def message_from_mime(raw_email, **overrides) -> Message:
    """
    Parse a raw RFC822 email into a Message.

    Args:
        raw_email: The raw email content as a string or bytes.
        overrides: Message fields that replace the parsed values.

    Returns:
        Message instance.
    """
    if isinstance(raw_email, bytes):
        msg = email.message_from_bytes(raw_email, policy=policy.compat32)
    else:
        msg = email.message_from_string(raw_email, policy=policy.compat32)

    from_name, from_email = parse_address(msg.get("From", ""))

    text_body = None
    html_body = None
    attachments = []

    for part in msg.walk():
        if part.is_multipart():
            continue

        content_type = part.get_content_type()
        content_disposition = str(part.get("Content-Disposition", ""))
        payload = part.get_payload(decode=True) or b""

        if "attachment" in content_disposition or part.get_filename():
            attachments.append(
                Attachment(
                    filename=part.get_filename() or "unnamed",
                    content_type=content_type,
                    content=payload,
                )
            )
            continue

        charset = part.get_content_charset() or "utf-8"
        try:
            text = payload.decode(charset, errors="replace")
        except LookupError:
            text = payload.decode("utf-8", errors="replace")

        if content_type == "text/plain" and text_body is None:
            text_body = text
        elif content_type == "text/html" and html_body is None:
            html_body = text

    subject = msg.get("Subject")
    fields = dict(
        from_email=from_email,
        from_name=from_name or None,
        to=split_addresses(msg.get_all("To", [])),
        cc=split_addresses(msg.get_all("Cc", [])),
        bcc=split_addresses(msg.get_all("Bcc", [])),
        subject=decode_header_value(subject) if subject is not None else None,
        body_text=text_body,
        body_html=html_body,
        headers=[(key, str(value)) for key, value in msg.items()],
        attachments=attachments,
    )
    fields.update(overrides)
    return Message(**fields)
