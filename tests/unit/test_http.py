"""
Unit tests for the request and response adapters.
"""

import base64
import json

from lambda_router.http import Request, Response

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


class TestRequest:
    """Test cases for Request."""

    def test_rest_api_event(self, make_event):
        """Test reading a REST API (v1) event."""
        request = Request(make_event("post", "/users", headers={"X-Api-Key": "secret"},
                                     query={"page": "2"}, body={"name": "Ada"}))

        assert request.method == "POST"
        assert request.path == "/users"
        assert request.request_id == "test-request-id-123"
        assert request.header("x-api-key") == "secret"
        assert request.headers["content-type"] == "application/json"
        assert request.query == {"page": "2"}
        assert request.body == {"name": "Ada"}
        assert request.json == {"name": "Ada"}

    def test_http_api_event(self, make_event):
        """Test that HTTP API (v2) events read the same way."""
        request = Request(make_event("GET", "/users/42", query={"expand": "true"}, version="2.0"))

        assert request.method == "GET"
        assert request.path == "/users/42"
        assert request.request_id == "test-request-id-v2"
        assert request.query == {"expand": "true"}
        assert request.body is None

    def test_base64_body_is_decoded(self, make_event):
        """Test that base64 encoded bodies are decoded before parsing."""
        request = Request(make_event("POST", "/users", body={"name": "Ada"}, base64_body=True))

        assert request.raw_body == '{"name": "Ada"}'
        assert request.body == {"name": "Ada"}

    def test_binary_body_stays_bytes(self, make_event):
        """Test that a base64 payload that is not UTF-8 text is exposed as bytes."""
        event = make_event("POST", "/uploads", headers={"Content-Type": "image/png"})
        event["body"] = base64.b64encode(PNG_HEADER).decode("ascii")
        event["isBase64Encoded"] = True

        request = Request(event)

        assert request.raw_bytes == PNG_HEADER
        assert request.body == PNG_HEADER
        assert request.json is None
        assert request.to_dict()["body"] == f"<{len(PNG_HEADER)} bytes>"

    def test_malformed_base64_is_kept_as_sent(self, make_event):
        """Test that a payload flagged as base64 but not decodable does not raise."""
        event = make_event("POST", "/uploads")
        event["body"] = "abc"
        event["isBase64Encoded"] = True

        request = Request(event)

        assert request.raw_bytes == b"abc"
        assert request.body == "abc"

    def test_form_body(self, make_event):
        """Test that form payloads become a dict of first values."""
        request = Request(make_event("POST", "/login", body="user=ada&user=bob&remember=",
                                     headers={"Content-Type": "application/x-www-form-urlencoded"}))

        assert request.body == {"user": "ada", "remember": ""}

    def test_invalid_json_is_kept_as_text(self, make_event):
        """Test that an undecodable JSON payload is exposed as text."""
        request = Request(make_event("POST", "/users", body="{not json",
                                     headers={"Content-Type": "application/json"}))

        assert request.body == "{not json"
        assert request.json is None

    def test_bind_route(self, make_event):
        """Test recording the matched route and its parameters."""
        request = Request(make_event("GET", "/users/42"))

        request.bind_route("/users/{id}", {"id": "42"})

        assert request.route == "/users/{id}"
        assert request.path_params == {"id": "42"}

    def test_multi_value_query_from_http_api(self, make_event):
        """Test that comma joined HTTP API values are split."""
        request = Request(make_event("GET", "/items", query={"tag": "a,b"}, version="2.0"))

        assert request.multi_query == {"tag": ["a", "b"]}

    def test_proxy_event(self, make_event):
        """Test access to the Powertools data class."""
        request = Request(make_event("GET", "/users", version="2.0"))

        assert request.proxy_event.raw_path == "/users"


class TestResponse:
    """Test cases for Response."""

    def test_defaults(self):
        """Test a fresh response."""
        response = Response(headers={"Content-Type": "application/json"})

        assert response.code == 200
        assert response.body is None
        assert response.body_set is False
        assert response.to_dict() == {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json"},
            "body": "",
            "isBase64Encoded": False,
        }

    def test_json_body(self):
        """Test that structured bodies are serialized as JSON."""
        response = Response()
        response.code = 201
        response.body = {"id": 1}

        result = response.to_dict()

        assert result["statusCode"] == 201
        assert json.loads(result["body"]) == {"id": 1}

    def test_bytes_body_is_base64_encoded(self):
        """Test binary bodies."""
        response = Response()
        response.body = b"\x89PNG"

        result = response.to_dict()

        assert result["isBase64Encoded"] is True
        assert base64.b64decode(result["body"]) == b"\x89PNG"

    def test_headers(self):
        """Test header updates."""
        response = Response(headers={"Content-Type": "application/json"})
        response.set_header("X-Trace", "1")
        response.headers = {"X-Other": "2"}

        assert response.headers == {"Content-Type": "application/json", "X-Trace": "1", "X-Other": "2"}

    def test_set_error(self):
        """Test that recording an error moves the status code to 400."""
        response = Response()

        response.set_error("headers.x-api-key", "invalid key")

        assert response.has_errors
        assert response.code == 400
        assert response.errors == [{"key_path": "headers.x-api-key", "message": "invalid key"}]

    def test_set_error_keeps_error_code(self):
        """Test that a status code already chosen by a hook is kept."""
        response = Response()
        response.code = 403

        response.set_error("auth", "forbidden")

        assert response.code == 403

    def test_sealed_response_ignores_writes(self):
        """Test that a sealed response cannot change."""
        response = Response()
        response.body = {"before": True}
        response.seal()

        response.body = {"after": True}
        response.code = 500
        response.set_header("X-Late", "1")
        response.set_error("late", "ignored")

        assert response.sealed
        assert response.body == {"before": True}
        assert response.code == 200
        assert "X-Late" not in response.headers
        assert not response.has_errors
