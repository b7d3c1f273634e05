"""
Heuristic detection of autoresponses (out-of-office notices, vacation
replies, bounces and other machine-generated mail).

Usage::

    from multimail.mail import autoresponse

    # Once, during startup (MultimailConfig.ready does this from settings)
    autoresponse.setup(autoresponse_pattern=r"^Out of Office AutoReply:")

    autoresponse.is_autoresponse(message)

A detector with its own pattern can be built and passed around instead of
relying on the process-wide default::

    detector = AutoresponseDetector(re.compile(r"^Auto:", re.IGNORECASE))
    detector.is_autoresponse(message)
"""

import logging
import re
import threading

from multimail.exceptions import AlreadyConfigured

logger = logging.getLogger("multimail")

# Headers that flag an autoresponse when they carry exactly this value.
# None means any value counts.
HEADER_VALUES = (
    ("Delivered-To", "Autoresponder"),
    ("Precedence", "auto_reply"),
    ("Return-Path", None),  # in most cases, this would signify a bounce
    ("X-Autoreply", "yes"),
    ("X-FC-MachineGenerated", "true"),
    ("X-POST-MessageClass", "9; Autoresponder"),
    ("X-Precedence", "auto_reply"),
)

# Headers that flag an autoresponse by their presence alone.
PRESENCE_HEADERS = (
    "X-Autogenerated",   # one of Forward, Group, Letter, Mirror, Redirect or Reply
    "X-AutoReply-From",  # an email address
    "X-Autorespond",     # an email subject
    "X-Mail-Autoreply",  # often "dtc-autoreply"
)


class AutoresponseDetector:
    """Classify messages as autoresponses from their headers and subject."""

    def __init__(self, pattern=None):
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        self.pattern = pattern

    def is_autoresponse(self, message) -> bool:
        """
        Return whether a message is an autoresponse.

        See https://github.com/opennorth/multi_mail/wiki/Detecting-autoresponders
        """
        for name, expected in HEADER_VALUES:
            if not message.has_header(name):
                continue
            if expected is None or message.get_header(name) == expected:
                return True

        if any(message.has_header(name) for name in PRESENCE_HEADERS):
            return True

        if message.has_header("Auto-Submitted"):
            if message.get_header("Auto-Submitted") != "no":
                return True

        if self.pattern is not None and message.subject:
            if self.pattern.search(message.subject):
                return True

        return False


_default_detector = AutoresponseDetector()
_configured = False
_lock = threading.Lock()


def setup(autoresponse_pattern=None):
    """
    Configure the process-wide default detector.

    May be called at most once, before messages are classified.

    Raises:
        AlreadyConfigured: If setup has already run in this process.
    """
    global _default_detector, _configured

    with _lock:
        if _configured:
            raise AlreadyConfigured("multimail autoresponse detection is already configured")
        _default_detector = AutoresponseDetector(autoresponse_pattern)
        _configured = True

    logger.debug(f"Autoresponse pattern configured: {autoresponse_pattern!r}")


def get_default_detector() -> AutoresponseDetector:
    return _default_detector


def is_autoresponse(message) -> bool:
    """Return whether a message is an autoresponse, using the default detector."""
    return _default_detector.is_autoresponse(message)
