from django.urls import path

from multimail.views import inbound

app_name = "multimail"

urlpatterns = [
    path("inbound/<str:provider>/", inbound.inbound_webhook, name="inbound_webhook"),
]
