from unittest import mock

import requests
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase


@override_settings(API_KEY="test-key", BASE_URL="https://llm.example/v1")
class ChatCompletionViewTests(APITestCase):
    def setUp(self):
        patcher = mock.patch("chat.upstream.requests.post")
        self.addCleanup(patcher.stop)
        self.mock_post = patcher.start()
        self.mock_response = mock.MagicMock()
        self.mock_response.raise_for_status.return_value = None
        self.mock_response.json.return_value = {
            "choices": [{"message": {"content": "Hello from Groq"}}]
        }
        self.mock_post.return_value = self.mock_response
        self.url = reverse("chat-completion")

    def test_relays_reply_from_provider(self):
        body = {"messages": [{"role": "user", "content": "Hi"}], "model": "llama3-8b-8192"}
        response = self.client.post(self.url, body, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"message": "Hello from Groq"})
        self.assertEqual(response["Access-Control-Allow-Origin"], "*")

        args, kwargs = self.mock_post.call_args
        self.assertEqual(args[0], "https://llm.example/v1/chat/completions")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer test-key")
        payload = kwargs["json"]
        self.assertEqual(payload["model"], "llama3-8b-8192")
        self.assertEqual(payload["messages"], [{"role": "user", "content": "Hi"}])
        self.assertEqual(payload["temperature"], 0.7)
        self.assertEqual(payload["max_tokens"], 2048)
        self.assertEqual(payload["top_p"], 1)
        self.assertFalse(payload["stream"])

    @override_settings(CHAT_DEFAULT_MODEL="mixtral-8x7b-32768")
    def test_model_defaults_when_omitted(self):
        response = self.client.post(
            self.url, {"messages": [{"role": "user", "content": "Hi"}]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.mock_post.call_args.kwargs["json"]["model"], "mixtral-8x7b-32768")

    def test_legacy_bot_role_is_forwarded_as_assistant(self):
        body = {
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "bot", "content": "Hello"},
                {"role": "user", "content": "How are you?"},
            ]
        }
        self.client.post(self.url, body, format="json")
        roles = [m["role"] for m in self.mock_post.call_args.kwargs["json"]["messages"]]
        self.assertEqual(roles, ["user", "assistant", "user"])

    def test_empty_completion_becomes_no_response(self):
        self.mock_response.json.return_value = {"choices": [{"message": {"content": None}}]}
        response = self.client.post(
            self.url, {"messages": [{"role": "user", "content": "Hi"}]}, format="json"
        )
        self.assertEqual(response.data, {"message": "No response"})

    def test_options_preflight_returns_empty_ok(self):
        response = self.client.options(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.content, b"")
        self.assertEqual(response["Access-Control-Allow-Methods"], "GET,OPTIONS,PATCH,DELETE,POST,PUT")
        self.assertEqual(response["Access-Control-Allow-Headers"], "Content-Type")
        self.mock_post.assert_not_called()

    def test_other_methods_are_not_allowed(self):
        for method in ("get", "put", "patch", "delete"):
            response = getattr(self.client, method)(self.url)
            self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
            self.assertEqual(response.data, {"error": "Method not allowed"})
            self.assertEqual(response["Access-Control-Allow-Origin"], "*")
        self.mock_post.assert_not_called()

    def test_provider_error_is_reported(self):
        error_response = mock.MagicMock()
        error_response.json.return_value = {"error": {"message": "Invalid API Key"}}
        self.mock_response.raise_for_status.side_effect = requests.HTTPError(
            "401 Client Error", response=error_response
        )
        response = self.client.post(
            self.url, {"messages": [{"role": "user", "content": "Hi"}]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data["error"], "Failed to get response from Groq")
        self.assertEqual(response.data["details"], "Invalid API Key")

    def test_network_error_is_reported(self):
        self.mock_post.side_effect = requests.ConnectionError("connection refused")
        response = self.client.post(
            self.url, {"messages": [{"role": "user", "content": "Hi"}]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn("connection refused", response.data["details"])

    @override_settings(API_KEY="")
    def test_missing_api_key_is_reported(self):
        response = self.client.post(
            self.url, {"messages": [{"role": "user", "content": "Hi"}]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn("GROQ_API_KEY", response.data["details"])
        self.mock_post.assert_not_called()

    def test_invalid_body_is_rejected(self):
        response = self.client.post(self.url, {"messages": "Hi"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Invalid request body")
        self.mock_post.assert_not_called()

    def test_malformed_json_is_rejected(self):
        response = self.client.post(self.url, "{not json", content_type="application/json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response["Access-Control-Allow-Origin"], "*")

    def test_unsupported_content_type_is_rejected(self):
        response = self.client.post(self.url, "hello", content_type="text/plain")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Invalid request body")
        self.assertIn("text/plain", response.data["details"])
        self.assertEqual(response["Access-Control-Allow-Origin"], "*")
        self.mock_post.assert_not_called()
