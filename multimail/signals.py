import django.dispatch

# Inbound email signals
message_received = django.dispatch.Signal()  # sender=receiver class, message, provider, spam, autoresponse
