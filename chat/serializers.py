from django.conf import settings
from rest_framework import serializers

from .records import Role, Theme

TRANSPORT_ROLES = ("system", Role.USER.value, Role.ASSISTANT.value, "bot")


class TransportMessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=TRANSPORT_ROLES)
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)

    def validate_role(self, value):
        return Role.ASSISTANT.value if value == "bot" else value


class CompletionRequestSerializer(serializers.Serializer):
    messages = TransportMessageSerializer(many=True, allow_empty=False)
    model = serializers.CharField(required=False, allow_blank=True)

    def validate_model(self, value):
        return value.strip() or settings.CHAT_DEFAULT_MODEL

    def to_internal_value(self, data):
        validated = super().to_internal_value(data)
        validated.setdefault("model", settings.CHAT_DEFAULT_MODEL)
        return validated


class MessageSerializer(serializers.Serializer):
    role = serializers.CharField()
    content = serializers.CharField()
    timestamp = serializers.DateTimeField()


class PreferencesSerializer(serializers.Serializer):
    model = serializers.CharField(required=False)
    theme = serializers.ChoiceField(choices=Theme.choices, required=False)


class SubmitSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True, trim_whitespace=False)
