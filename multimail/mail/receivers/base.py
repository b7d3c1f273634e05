import abc
import hmac
import logging
from types import MappingProxyType

from multimail.exceptions import ForgedRequest, InvalidAPIKey, InvalidMessage, InvalidOptions
from multimail.mail.message import Message
from multimail.mail.params import parse_params

logger = logging.getLogger("multimail")


class BaseReceiver(abc.ABC):
    """
    Abstract base class for inbound email receivers.

    Each receiver knows how to:
    1. Verify that a webhook request is authentic (``is_valid``).
    2. Transform the request's params into Message instances (``transform``).
    3. Flag messages the provider considers spam (``is_spam``).

    ``transform`` must be implemented in subclasses. ``is_valid`` and
    ``is_spam`` may be overridden; by default every request is authentic
    and no message is spam.
    """

    #: Options that must be present when the receiver is built.
    required_options = ()
    #: Options that may be present in addition to the required ones.
    recognized_options = ()
    #: Required options holding credentials, checked for well-formedness.
    credential_options = ()

    def __init__(self, options=None):
        options = dict(options or {})
        self.validate_options(options)
        self.options = MappingProxyType(options)

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique identifier for this receiver (e.g. 'mailgun', 'postmark')."""
        ...

    @classmethod
    def validate_options(cls, options):
        """
        Check options against the receiver's declared options.

        Raises:
            InvalidOptions: If a required option is missing or an option is
                not recognized.
            InvalidAPIKey: If a credential option is not a non-blank string.
        """
        missing = set(cls.required_options) - set(options)
        if missing:
            raise InvalidOptions(
                f"Missing required options: {', '.join(sorted(missing))}"
            )

        unrecognized = set(options) - set(cls.required_options) - set(cls.recognized_options)
        if unrecognized:
            raise InvalidOptions(
                f"Unrecognized options: {', '.join(sorted(unrecognized))}"
            )

        for option in cls.credential_options:
            value = options.get(option)
            if not isinstance(value, str) or not value.strip():
                raise InvalidAPIKey(f"{option} must be a non-blank string")

    @classmethod
    def parse(cls, raw) -> dict:
        """Parse raw POST data into a params dict."""
        return parse_params(raw)

    def process(self, raw) -> list:
        """
        Ensure a request is authentic, parse it into params, and transform
        it into a list of messages.

        Args:
            raw: Raw POST data (string or list of pairs) or a params dict.

        Returns:
            List of Message instances, in the provider's delivery order.

        Raises:
            ForgedRequest: If the request is not authentic.
            InvalidInput: If the payload shape is not supported.
            InvalidMessage: If a message is missing a required field.
        """
        params = self.parse(raw)
        if not self.is_valid(params):
            raise ForgedRequest(f"{self.name} request failed verification")

        messages = self.transform(params)
        logger.debug(f"{self.name} webhook produced {len(messages)} message(s)")
        return messages

    def is_valid(self, params) -> bool:
        """
        Return whether a request is authentic.

        Must not raise on malformed params; missing or malformed signature
        data simply makes the request invalid.
        """
        return True

    def transform(self, params) -> list[Message]:
        """Transform the content of a provider's webhook into a list of messages."""
        raise NotImplementedError(
            f"{type(self).__name__} does not implement transform()"
        )

    def is_spam(self, message: Message) -> bool:
        """Return whether the provider flagged a message as spam."""
        return False

    @staticmethod
    def secure_compare(expected: str, actual) -> bool:
        """Compare a secret to a request value in constant time."""
        if not isinstance(actual, str) or not actual:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))

    @staticmethod
    def scalar(params, key, default=None):
        """Return a param's value, or ``default`` if it is absent or repeated."""
        value = params.get(key, default)
        if isinstance(value, list):
            return default
        return value

    @staticmethod
    def expect(value, kind, description):
        """
        Return ``value`` if it is an instance of ``kind``.

        Raises:
            InvalidMessage: If a payload field has the wrong structure.
        """
        if not isinstance(value, kind):
            raise InvalidMessage(
                f"Malformed {description}: expected {kind.__name__}, "
                f"got {type(value).__name__}"
            )
        return value

    def spam_score_above_threshold(self, message: Message, header: str) -> bool:
        score = message.get_header(header)
        if score is None:
            return False
        try:
            return float(score) > float(self.options.get("spam_score_threshold", 5.0))
        except ValueError:
            logger.warning(f"{self.name}: ignoring non-numeric spam score {score!r}")
            return False
