from multimail.conf import get_setting
from multimail.exceptions import UnknownProvider
from multimail.mail.receivers.base import BaseReceiver
from multimail.mail.receivers.cloudmailin import CloudMailinReceiver
from multimail.mail.receivers.mailgun import MailgunReceiver
from multimail.mail.receivers.mandrill import MandrillReceiver
from multimail.mail.receivers.mock import MockReceiver
from multimail.mail.receivers.postmark import PostmarkReceiver
from multimail.mail.receivers.sendgrid import SendGridReceiver

RECEIVERS = {
    "cloudmailin": CloudMailinReceiver,
    "mailgun": MailgunReceiver,
    "mandrill": MandrillReceiver,
    "postmark": PostmarkReceiver,
    "sendgrid": SendGridReceiver,
    # for testing
    "mock": MockReceiver,
}


def register_receiver(name: str, factory, replace: bool = False):
    """
    Register a receiver factory under a provider name.

    ``factory`` is called with a dict of options and must return a
    BaseReceiver. Raises ValueError if the name is taken and ``replace``
    is false.
    """
    key = name.strip().lower()
    if key in RECEIVERS and not replace:
        raise ValueError(f"A receiver is already registered for '{key}'")
    RECEIVERS[key] = factory


def create_receiver(provider, options=None) -> BaseReceiver:
    """
    Return a receiver instance for a provider.

    The options mapping is copied, so the caller's mapping is never
    modified. A "provider" key in it is ignored.

    Raises UnknownProvider if the provider is not recognized.
    """
    options = dict(options or {})
    options.pop("provider", None)

    key = str(provider).strip().lower()
    factory = RECEIVERS.get(key)
    if factory is None:
        raise UnknownProvider(
            f"'{provider}' is not a recognized provider. "
            f"Must be one of: {', '.join(sorted(RECEIVERS))}"
        )
    return factory(options)


def get_receiver(provider) -> BaseReceiver:
    """Return a receiver configured from the MULTIMAIL["RECEIVERS"] setting."""
    key = str(provider).strip().lower()
    options = dict(get_setting("RECEIVERS").get(key) or {})

    factory = RECEIVERS.get(key)
    recognized = getattr(factory, "recognized_options", ())
    if "spam_score_threshold" in recognized and "spam_score_threshold" not in options:
        options["spam_score_threshold"] = get_setting("SPAM_SCORE_THRESHOLD")

    return create_receiver(key, options)


__all__ = [
    "BaseReceiver",
    "CloudMailinReceiver",
    "MailgunReceiver",
    "MandrillReceiver",
    "MockReceiver",
    "PostmarkReceiver",
    "SendGridReceiver",
    "RECEIVERS",
    "create_receiver",
    "get_receiver",
    "register_receiver",
]
