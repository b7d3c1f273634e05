class MultiMailError(Exception):
    """Base class for all errors raised by multimail."""


class ForgedRequest(MultiMailError):
    """Raised when an inbound webhook request fails its authenticity check."""


class InvalidAPIKey(MultiMailError):
    """Raised when provider credentials are malformed or rejected."""


class InvalidOptions(MultiMailError, ValueError):
    """Raised when a receiver is built with missing or unrecognized options."""


class AlreadyConfigured(MultiMailError, RuntimeError):
    """Raised when process-wide configuration is set a second time."""


class InvalidInput(MultiMailError, TypeError):
    """Raised when a webhook payload has a shape the parser cannot handle."""


class UnknownProvider(MultiMailError, ValueError):
    """Raised when no receiver is registered for a provider identifier."""


class InvalidMessage(MultiMailError):
    """Raised when a webhook payload cannot produce a valid message."""


class MissingSender(InvalidMessage):
    pass


class MissingRecipients(InvalidMessage):
    pass


class MissingSubject(InvalidMessage):
    pass


class MissingBody(InvalidMessage):
    pass
