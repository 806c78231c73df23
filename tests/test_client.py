"""Tests for modula.client.ModulaAPIClient with the HTTP session mocked."""

import json
import unittest
from unittest import mock

import requests

from modula.client import ModulaAPIClient


def _response(status: int = 200, body=None, content_type: str = "application/json",
              reason: str = "OK") -> requests.Response:
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp.url = "http://api.test/"
    if body is None:
        resp._content = b""
    elif isinstance(body, (bytes, str)):
        resp._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        resp._content = json.dumps(body).encode("utf-8")
    if content_type:
        resp.headers["Content-Type"] = content_type
    return resp


class ClientTestCase(unittest.TestCase):

    def setUp(self):
        self.client = ModulaAPIClient("http://api.test/")

    def _patch(self, **kwargs):
        return mock.patch.object(self.client.session, "request", **kwargs)

    def _sent(self, mock_request):
        args, kwargs = mock_request.call_args
        return args[0], args[1], kwargs


class TestMakeRequest(ClientTestCase):

    def test_base_url_trailing_slash_stripped(self):
        self.assertEqual(self.client.base_url, "http://api.test")

    def test_json_success(self):
        with self._patch(return_value=_response(body={"ok": True})):
            result = self.client._make_request("GET", "/module")
        self.assertEqual(result, {"success": True, "data": {"ok": True}})

    def test_invalid_json_success_body(self):
        with self._patch(return_value=_response(body="<html>ok</html>")):
            result = self.client._make_request("POST", "/module")
        self.assertEqual(result, {"success": True, "data": {"message": "<html>ok</html>"}})

    def test_text_success(self):
        with self._patch(return_value=_response(body="deleted", content_type="text/plain")):
            result = self.client._make_request("DELETE", "/module/1")
        self.assertEqual(result, {"success": True, "data": {"message": "deleted"}})

    def test_empty_body_success(self):
        with self._patch(return_value=_response(status=204, content_type="")):
            result = self.client._make_request("DELETE", "/module/1")
        self.assertEqual(result["data"], {"message": "Success"})

    def test_no_token_no_auth_header(self):
        with self._patch(return_value=_response(body={})) as mock_request:
            self.client._make_request("GET", "/module")
        _, _, kwargs = self._sent(mock_request)
        self.assertNotIn("Authorization", kwargs.get("headers", {}))

    def test_token_sent_as_bearer(self):
        self.client.token = "tok123"
        with self._patch(return_value=_response(body={})) as mock_request:
            self.client._make_request("GET", "/module")
        method, url, kwargs = self._sent(mock_request)
        self.assertEqual(method, "GET")
        self.assertEqual(url, "http://api.test/module")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok123")
        self.assertEqual(kwargs["timeout"], 30)

    def test_backend_error_payload_passed_through(self):
        payload = {"statusCode": 401, "message": "Unauthorized"}
        with self._patch(return_value=_response(401, payload, reason="Unauthorized")):
            result = self.client._make_request("GET", "/module")
        self.assertFalse(result["success"])
        self.assertEqual(result["status"], 401)
        self.assertEqual(result["error"], payload)

    def test_backend_error_text(self):
        with self._patch(return_value=_response(500, "boom", content_type="text/plain", reason="Server Error")):
            result = self.client._make_request("GET", "/module")
        self.assertEqual(result["status"], 500)
        self.assertEqual(result["error"], "boom")

    def test_backend_error_empty_body(self):
        with self._patch(return_value=_response(404, content_type="", reason="Not Found")):
            result = self.client._make_request("GET", "/module/x")
        self.assertEqual(result["error"], "HTTP Error 404: Not Found")

    def test_connection_error(self):
        with self._patch(side_effect=requests.exceptions.ConnectionError("refused")):
            result = self.client._make_request("GET", "/module")
        self.assertFalse(result["success"])
        self.assertIsNone(result["status"])
        self.assertIn("Connection failed", result["error"])
        self.assertIn("refused", result["error"])


class TestOperations(ClientTestCase):

    def test_register(self):
        created = {"_id": "u1", "email": "a@b.c"}
        with self._patch(return_value=_response(201, created)) as mock_request:
            result = self.client.register("Ana", "ana", "a@b.c", "pw")
        method, url, kwargs = self._sent(mock_request)
        self.assertEqual((method, url), ("POST", "http://api.test/auth/register"))
        self.assertEqual(kwargs["json"], {"name": "Ana", "nickname": "ana", "email": "a@b.c", "password": "pw"})
        self.assertEqual(result["data"], created)

    def test_register_validation_error(self):
        errors = {"message": ["email must be an email"], "error": "Bad Request"}
        with self._patch(return_value=_response(400, errors, reason="Bad Request")):
            result = self.client.register("Ana", "ana", "nope", "pw")
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], errors)

    def test_login_access_token(self):
        with self._patch(return_value=_response(body={"access_token": "jwt"})) as mock_request:
            result = self.client.login("a@b.c", "pw")
        method, url, kwargs = self._sent(mock_request)
        self.assertEqual((method, url), ("POST", "http://api.test/auth/login"))
        self.assertEqual(kwargs["json"], {"email": "a@b.c", "password": "pw"})
        self.assertTrue(result["success"])
        self.assertEqual(result["token"], "jwt")

    def test_login_token_field(self):
        with self._patch(return_value=_response(body={"token": "jwt2"})):
            self.assertEqual(self.client.login("a@b.c", "pw")["token"], "jwt2")

    def test_login_without_token_in_response(self):
        with self._patch(return_value=_response(body={"user": "a"})):
            result = self.client.login("a@b.c", "pw")
        self.assertFalse(result["success"])
        self.assertIn("token", result["error"])

    def test_login_does_not_store_token(self):
        with self._patch(return_value=_response(body={"access_token": "jwt"})):
            self.client.login("a@b.c", "pw")
        self.assertIsNone(self.client.token)

    def test_list_modules(self):
        modules = [{"_id": "m1", "name": "auth"}]
        with self._patch(return_value=_response(body=modules)) as mock_request:
            result = self.client.list_modules()
        self.assertEqual(self._sent(mock_request)[:2], ("GET", "http://api.test/module"))
        self.assertEqual(result["data"], modules)

    def test_view_module(self):
        with self._patch(return_value=_response(body={"_id": "m1"})) as mock_request:
            self.client.view_module("m1")
        self.assertEqual(self._sent(mock_request)[:2], ("GET", "http://api.test/module/m1"))

    def test_module_id_is_quoted(self):
        with self._patch(return_value=_response(body={})) as mock_request:
            self.client.view_module("../auth")
        self.assertEqual(self._sent(mock_request)[1], "http://api.test/module/..%2Fauth")

    def test_download_module(self):
        payload = {"name": "auth", "content": [{"type": "file", "name": "a", "content": ""}]}
        with self._patch(return_value=_response(body=payload)) as mock_request:
            result = self.client.download_module("m1")
        self.assertEqual(self._sent(mock_request)[:2], ("GET", "http://api.test/module/m1/content"))
        self.assertEqual(result["data"], payload)

    def test_upload_module(self):
        nodes = [{"type": "file", "name": "a.txt", "content": "hi"}]
        with self._patch(return_value=_response(201, {"_id": "m2"})) as mock_request:
            result = self.client.upload_module("auth", "Auth module", "./auth", "nestjs", nodes)
        method, url, kwargs = self._sent(mock_request)
        self.assertEqual((method, url), ("POST", "http://api.test/module"))
        self.assertEqual(kwargs["json"], {
            "name": "auth",
            "description": "Auth module",
            "path": "./auth",
            "tool": "nestjs",
            "nodes": nodes,
        })
        self.assertTrue(result["success"])

    def test_delete_module(self):
        with self._patch(return_value=_response(body={"deleted": True})) as mock_request:
            result = self.client.delete_module("m1")
        self.assertEqual(self._sent(mock_request)[:2], ("DELETE", "http://api.test/module/m1"))
        self.assertTrue(result["success"])


if __name__ == "__main__":
    unittest.main()
