import base64
import hashlib
import hmac
import json

import factory

from multimail.mail.message import Attachment, Message


class AttachmentFactory(factory.Factory):
    class Meta:
        model = Attachment

    filename = factory.Sequence(lambda n: f"report-{n}.csv")
    content_type = "text/csv"
    content = b"col1,col2\n100,200"


class MessageFactory(factory.Factory):
    class Meta:
        model = Message

    from_email = factory.Faker("email")
    from_name = factory.Faker("name")
    to = factory.LazyFunction(lambda: ("support@example.com",))
    subject = factory.Faker("sentence", nb_words=6)
    body_text = factory.Faker("paragraph")
    body_html = None
    headers = ()
    attachments = ()


def mailgun_signature(api_key, timestamp="1700000000", token="a" * 50):
    """Return signed Mailgun webhook fields for an API key."""
    signature = hmac.new(
        api_key.encode("utf-8"),
        f"{timestamp}{token}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return {"timestamp": timestamp, "token": token, "signature": signature}


def make_postmark_payload(
    from_email="licensee@example.com",
    to_address="reports@inbound.example.com",
    subject="Q1 2025 Royalty Report",
    attachments=None,
):
    """Build a minimal Postmark inbound webhook payload (PascalCase)."""
    if attachments is None:
        attachments = [
            {
                "Name": "report.csv",
                "Content": base64.b64encode(b"col1,col2\n100,200").decode(),
                "ContentType": "text/csv",
                "ContentLength": 17,
            }
        ]
    return {
        "From": from_email,
        "FromName": "Licensee",
        "FromFull": {"Email": from_email, "Name": "Licensee"},
        "To": to_address,
        "ToFull": [{"Email": to_address, "Name": ""}],
        "Cc": "",
        "CcFull": [],
        "Subject": subject,
        "MessageID": "73e6d360-66eb-11e1-8e72-a8904824019b",
        "TextBody": "Please find the report attached.",
        "HtmlBody": "<p>Please find the report attached.</p>",
        "Headers": [
            {"Name": "Message-ID", "Value": "<abc123@mail.example.com>"},
            {"Name": "X-Spam-Status", "Value": "No"},
        ],
        "Attachments": attachments,
    }


def make_mandrill_event(subject="Hello", from_email="sender@example.com", **msg):
    """Build a single Mandrill inbound event."""
    event_msg = {
        "from_email": from_email,
        "from_name": "Sender",
        "to": [["inbound@example.com", None]],
        "subject": subject,
        "text": "Plain body",
        "html": "<p>HTML body</p>",
        "headers": {"Message-Id": "<m1@example.com>", "Received": ["a", "b"]},
        "attachments": {},
        "spam_report": {"score": 1.2, "matched_rules": []},
    }
    event_msg.update(msg)
    return {"event": "inbound", "ts": 1700000000, "msg": event_msg}


def make_mandrill_params(*events):
    return {"mandrill_events": json.dumps(list(events))}
