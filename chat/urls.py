from django.urls import path, re_path

from .views import (
    ChatCompletionView,
    ClientConversationView,
    ClientExportView,
    ClientListView,
    ClientPreferencesView,
)

urlpatterns = [
    re_path(r"^chat/?$", ChatCompletionView.as_view(), name="chat-completion"),
    path("clients/", ClientListView.as_view(), name="client-list"),
    path("clients/<uuid:client_id>/", ClientConversationView.as_view(), name="client-conversation"),
    path("clients/<uuid:client_id>/preferences/", ClientPreferencesView.as_view(), name="client-preferences"),
    path("clients/<uuid:client_id>/export/", ClientExportView.as_view(), name="client-export"),
]
