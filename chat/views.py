import json
import logging
import threading

from django.conf import settings
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.response import Response
from rest_framework.views import APIView

from .gateway import CompletionGateway
from .models import ClientStore
from .serializers import (
    CompletionRequestSerializer,
    MessageSerializer,
    PreferencesSerializer,
    SubmitSerializer,
)
from .session import InvalidInput, SessionBusy, SessionController, TranscriptSink
from .storage import DatabaseKeyValueStore, PersistenceAdapter
from .upstream import UpstreamError, create_chat_completion

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ChatCompletionView(APIView):
    """Relay a conversation to the completion provider and return its reply."""

    def options(self, request, *args, **kwargs):
        return Response(status=status.HTTP_200_OK)

    def http_method_not_allowed(self, request, *args, **kwargs):
        return Response({"error": "Method not allowed"}, status=status.HTTP_405_METHOD_NOT_ALLOWED)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        for header, value in CORS_HEADERS.items():
            response[header] = value
        return response

    def post(self, request):
        try:
            serializer = CompletionRequestSerializer(data=request.data)
        except (ParseError, UnsupportedMediaType) as exc:
            return Response(
                {"error": "Invalid request body", "details": str(exc.detail)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid request body", "details": json.dumps(serializer.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        messages = [dict(message) for message in serializer.validated_data["messages"]]
        model = serializer.validated_data["model"]
        try:
            content = create_chat_completion(messages, model)
        except UpstreamError as exc:
            logger.exception("Completion provider error for model %s", model)
            return Response(
                {"error": "Failed to get response from Groq", "details": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response({"message": content or "No response"})


class ControllerRegistry:
    """One SessionController per client, kept until the client clears its chat."""

    def __init__(self):
        self._controllers = {}
        self._lock = threading.Lock()

    def get(self, client: ClientStore) -> SessionController:
        with self._lock:
            controller = self._controllers.get(client.id)
            if controller is None:
                controller = SessionController(
                    gateway=CompletionGateway(settings.CHAT_PROXY_URL, timeout=settings.CHAT_GATEWAY_TIMEOUT),
                    persistence=PersistenceAdapter(DatabaseKeyValueStore(client)),
                    sink=TranscriptSink(),
                )
                # history replayed during hydration is returned by GET, not by the next submit
                controller.sink.drain()
                self._controllers[client.id] = controller
            return controller

    def discard(self, client_id) -> None:
        with self._lock:
            self._controllers.pop(client_id, None)

    def clear(self) -> None:
        with self._lock:
            self._controllers.clear()


controllers = ControllerRegistry()


def _conversation_payload(client_id, controller: SessionController) -> dict:
    return {
        "client_id": str(client_id),
        "state": controller.state,
        "preferences": PreferencesSerializer(controller.preferences).data,
        "messages": MessageSerializer(controller.messages, many=True).data,
    }


class ClientListView(APIView):
    """Register a new chat client with its own storage."""

    def post(self, request):
        client = ClientStore.objects.create()
        logger.info("Created chat client %s", client.id)
        return Response({"client_id": str(client.id)}, status=status.HTTP_201_CREATED)


class ClientConversationView(APIView):
    def get(self, request, client_id):
        client = get_object_or_404(ClientStore, id=client_id)
        return Response(_conversation_payload(client.id, controllers.get(client)))

    def post(self, request, client_id):
        client = get_object_or_404(ClientStore, id=client_id)
        serializer = SubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = controllers.get(client)
        try:
            reply = controller.submit(serializer.validated_data["text"])
        except InvalidInput as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except SessionBusy as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(
            {
                "reply": MessageSerializer(reply).data,
                "appended": MessageSerializer(controller.sink.drain(), many=True).data,
                "state": controller.state,
            }
        )

    def delete(self, request, client_id):
        client = get_object_or_404(ClientStore, id=client_id)
        try:
            controllers.get(client).reset()
        except SessionBusy as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        controllers.discard(client.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ClientPreferencesView(APIView):
    def patch(self, request, client_id):
        client = get_object_or_404(ClientStore, id=client_id)
        serializer = PreferencesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = controllers.get(client)
        if "model" in serializer.validated_data:
            controller.select_model(serializer.validated_data["model"])
        if "theme" in serializer.validated_data:
            controller.set_theme(serializer.validated_data["theme"])
        return Response(PreferencesSerializer(controller.preferences).data)


class ClientExportView(APIView):
    """Download the conversation as a JSON file."""

    def get(self, request, client_id):
        client = get_object_or_404(ClientStore, id=client_id)
        controller = controllers.get(client)
        response = HttpResponse(controller.export(), content_type="application/json")
        response["Content-Disposition"] = f'attachment; filename="{controller.export_filename()}"'
        return response
