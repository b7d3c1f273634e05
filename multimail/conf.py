from django.conf import settings


DEFAULTS = {
    # Receiver options keyed by provider, e.g.
    # {"mailgun": {"mailgun_api_key": "key-..."}}
    "RECEIVERS": {},
    # Subjects matching this pattern are treated as autoresponses
    "AUTORESPONSE_PATTERN": None,
    # Shared secret expected in the "token" query parameter of webhook URLs
    "WEBHOOK_TOKEN": None,
    # Skip the message_received signal for messages the provider marks as spam
    "DROP_SPAM": False,
    # Default threshold for providers that report a numeric spam score
    "SPAM_SCORE_THRESHOLD": 5.0,
}


def get_setting(name):
    """
    Retrieve a setting from the MULTIMAIL dict in Django settings,
    falling back to DEFAULTS if not provided.
    """
    user_settings = getattr(settings, "MULTIMAIL", {})
    value = user_settings.get(name, DEFAULTS.get(name))

    if name == "RECEIVERS" and value is None:
        value = {}

    return value
