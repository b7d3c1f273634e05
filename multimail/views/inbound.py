import logging

from django.http import (
    HttpResponse,
    HttpResponseBadRequest,
    HttpResponseForbidden,
    HttpResponseServerError,
)
from django.utils.translation import gettext as _
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from multimail.conf import get_setting
from multimail.exceptions import (
    ForgedRequest,
    InvalidAPIKey,
    InvalidInput,
    InvalidMessage,
    InvalidOptions,
    UnknownProvider,
)
from multimail.mail.autoresponse import is_autoresponse
from multimail.mail.receivers import BaseReceiver, get_receiver
from multimail.signals import message_received

logger = logging.getLogger("multimail")


@csrf_exempt
@require_POST
def inbound_webhook(request, provider):
    """
    Receive inbound email webhooks from external services (Mailgun,
    Postmark, SendGrid, etc.).

    This endpoint is intentionally NOT behind authentication since
    external email services POST to it directly. Each receiver checks the
    request's authenticity itself; the optional WEBHOOK_TOKEN setting adds
    a shared secret to the webhook URL for providers that do not sign
    their requests.

    URL pattern: /inbound/<provider>/

    Every message in the request is sent through the ``message_received``
    signal.

    Returns:
        200 OK on success, 400/403 on a bad request, 500 if the receiver
        is misconfigured.
    """
    expected_token = get_setting("WEBHOOK_TOKEN")
    if expected_token and not BaseReceiver.secure_compare(
        expected_token, request.GET.get("token", "")
    ):
        logger.warning(
            f"Inbound email webhook token mismatch "
            f"(provider={provider}, ip={request.META.get('REMOTE_ADDR')})"
        )
        return HttpResponseForbidden(_("Request verification failed."))

    # Resolve the receiver
    try:
        receiver = get_receiver(provider)
    except UnknownProvider as exc:
        logger.error(f"Unknown inbound email provider: {provider}")
        return HttpResponseBadRequest(str(exc))
    except (InvalidOptions, InvalidAPIKey) as exc:
        logger.error(f"Inbound email receiver '{provider}' is misconfigured: {exc}")
        return HttpResponseServerError(_("Inbound email receiver is misconfigured."))

    try:
        raw = _raw_payload(request)
    except UnicodeDecodeError:
        logger.warning(f"Inbound email webhook body is not UTF-8 (provider={provider})")
        return HttpResponseBadRequest(_("Request body must be UTF-8."))

    try:
        messages = receiver.process(raw)
    except ForgedRequest:
        logger.warning(
            f"Inbound email webhook verification failed "
            f"(provider={provider}, ip={request.META.get('REMOTE_ADDR')})"
        )
        return HttpResponseForbidden(_("Request verification failed."))
    except (InvalidInput, InvalidMessage) as exc:
        logger.error(
            f"Failed to parse inbound email webhook "
            f"(provider={provider}): {type(exc).__name__}: {exc}"
        )
        return HttpResponseBadRequest(f"Failed to parse request: {exc}")

    drop_spam = get_setting("DROP_SPAM")
    for message in messages:
        spam = receiver.is_spam(message)
        if spam and drop_spam:
            logger.info(f"Dropping spam from {message.from_email} (provider={provider})")
            continue

        message_received.send(
            sender=type(receiver),
            message=message,
            provider=receiver.name,
            spam=spam,
            autoresponse=is_autoresponse(message),
        )

    return HttpResponse("OK", status=200)


def _raw_payload(request):
    """
    Return the request payload in a shape the parameter parser accepts.

    Multipart requests become a list of (key, value) pairs, uploaded files
    included. Any other body is passed through as a string.
    """
    if request.content_type == "multipart/form-data":
        pairs = [(key, value) for key, values in request.POST.lists() for value in values]
        pairs.extend(
            (key, uploaded) for key, files in request.FILES.lists() for uploaded in files
        )
        return pairs
    return request.body.decode("utf-8")
