import django
from django.conf import settings
import pytest

from multimail.mail.receivers import create_receiver
from tests.factories import MessageFactory


def pytest_configure():
    settings.configure(
        DEBUG=True,
        DATABASES={
            "default": {
                "ENGINE": "django.db.backends.sqlite3",
                "NAME": ":memory:",
            }
        },
        INSTALLED_APPS=[
            "multimail",
        ],
        ROOT_URLCONF="tests.urls",
        MULTIMAIL={
            "RECEIVERS": {
                "mailgun": {"mailgun_api_key": "key-test"},
                "mock": {"secret": "s3cret"},
            },
            "AUTORESPONSE_PATTERN": r"^Out of Office",
            "WEBHOOK_TOKEN": None,
            "DROP_SPAM": False,
        },
        MIDDLEWARE=[
            "django.middleware.common.CommonMiddleware",
        ],
        SECRET_KEY="test-secret-key-not-for-production",
    )
    django.setup()


@pytest.fixture
def message():
    return MessageFactory()


@pytest.fixture
def mock_receiver():
    return create_receiver("mock")
