"""
Tests for the API client, auth service and meme service.

All HTTP traffic goes through httpx.MockTransport; nothing leaves the process.

Covers:
- Bearer token injection
- Single refresh on 401, replay with the new token
- Failed refresh clears the session and reports auth failure
- Backend error message extraction
- Sign in / sign out
- AI generation response validation
- Multipart meme upload
"""

import base64
import json
import tempfile
import time
import unittest
from pathlib import Path

import httpx

from memeforge.services.api_client import (
    ApiAuthError,
    ApiClient,
    ApiConnectionError,
    ApiError,
    InvalidResponseError,
)
from memeforge.services.auth_service import AuthService, token_expires_soon, token_expiry
from memeforge.services.meme_service import (
    GeneratedImageMetadata,
    MemeService,
    SaveMemeRequest,
)
from memeforge.services.session_store import SessionStore

API = "http://api.test/api"


def make_jwt(exp: float) -> str:
    def part(obj):
        raw = json.dumps(obj).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{part({'alg': 'HS256'})}.{part({'exp': exp})}.signature"


class ApiTestCase(unittest.TestCase):
    """Client against a scripted backend; ``self.calls`` records requests."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SessionStore(Path(self._tmp.name) / "session.json")
        self.calls = []
        self.routes = {}
        self.auth_failures = []

        def handler(request: httpx.Request) -> httpx.Response:
            request.read()
            self.calls.append(request)
            key = (request.method, request.url.path)
            route = self.routes.get(key)
            if route is None:
                return httpx.Response(404, json={"error": "Not found"})
            return route(request)

        self.client = ApiClient(
            API,
            self.store,
            on_auth_failed=lambda: self.auth_failures.append(True),
            transport=httpx.MockTransport(handler),
        )

    def tearDown(self):
        self.client.close()
        self._tmp.cleanup()

    def route(self, method, path, responder):
        self.routes[(method, "/api" + path)] = responder


class TestRequests(ApiTestCase):

    def test_bearer_token_sent(self):
        self.store.save({"id": 1}, "tok-1")
        self.route("GET", "/memes", lambda r: httpx.Response(200, json={"memes": []}))

        self.assertEqual(self.client.get("/memes"), {"memes": []})
        self.assertEqual(self.calls[0].headers["Authorization"], "Bearer tok-1")

    def test_explicit_token_overrides_store(self):
        self.store.save({"id": 1}, "stored")
        self.route("GET", "/memes", lambda r: httpx.Response(200, json={}))
        self.client.get("/memes", token="explicit")
        self.assertEqual(self.calls[0].headers["Authorization"], "Bearer explicit")

    def test_no_token_no_header(self):
        self.route("GET", "/public", lambda r: httpx.Response(200, json={}))
        self.client.get("/public")
        self.assertNotIn("Authorization", self.calls[0].headers)

    def test_json_body(self):
        self.route("POST", "/things", lambda r: httpx.Response(201, json={"ok": True}))
        self.client.post("/things", {"name": "x"})
        self.assertEqual(json.loads(self.calls[0].content), {"name": "x"})

    def test_empty_body_returns_none(self):
        self.route("DELETE", "/memes/1", lambda r: httpx.Response(204))
        self.assertIsNone(self.client.delete("/memes/1"))

    def test_error_message_from_body(self):
        self.route("POST", "/things", lambda r: httpx.Response(400, json={"error": "Bad input"}))
        with self.assertRaises(ApiError) as ctx:
            self.client.post("/things", {})
        self.assertEqual(ctx.exception.message, "Bad input")
        self.assertEqual(ctx.exception.status, 400)

    def test_message_field_also_used(self):
        self.route("GET", "/x", lambda r: httpx.Response(500, json={"message": "Boom"}))
        with self.assertRaises(ApiError) as ctx:
            self.client.get("/x")
        self.assertEqual(ctx.exception.message, "Boom")

    def test_generic_message_without_body(self):
        self.route("GET", "/x", lambda r: httpx.Response(503, text="unavailable"))
        with self.assertRaises(ApiError) as ctx:
            self.client.get("/x")
        self.assertEqual(ctx.exception.message, "Request failed with status 503")

    def test_non_json_success_raises(self):
        self.route("GET", "/x", lambda r: httpx.Response(200, text="<html>"))
        with self.assertRaises(InvalidResponseError):
            self.client.get("/x")

    def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client = ApiClient(API, self.store, transport=httpx.MockTransport(refuse))
        with self.assertRaises(ApiConnectionError):
            client.get("/x")
        client.close()


class TestRefresh(ApiTestCase):

    def test_401_refreshes_once_and_replays(self):
        self.store.save({"id": 1}, "old")

        def memes(request):
            if request.headers["Authorization"] == "Bearer new":
                return httpx.Response(200, json={"memes": [1]})
            return httpx.Response(401, json={"error": "expired"})

        self.route("GET", "/memes", memes)
        self.route("POST", "/auth/refresh-token", lambda r: httpx.Response(
            200, json={"data": {"user": {"id": 1}, "token": "new"}}
        ))

        self.assertEqual(self.client.get("/memes"), {"memes": [1]})
        paths = [c.url.path for c in self.calls]
        self.assertEqual(paths, ["/api/memes", "/api/auth/refresh-token", "/api/memes"])
        self.assertEqual(self.calls[1].headers["Authorization"], "Bearer old")
        self.assertEqual(self.store.token, "new")
        self.assertEqual(self.auth_failures, [])

    def test_failed_refresh_clears_session(self):
        self.store.save({"id": 1}, "old")
        self.route("GET", "/memes", lambda r: httpx.Response(401))
        self.route("POST", "/auth/refresh-token", lambda r: httpx.Response(401))

        with self.assertRaises(ApiAuthError) as ctx:
            self.client.get("/memes")

        self.assertEqual(ctx.exception.status, 401)
        self.assertIsNone(self.store.token)
        self.assertFalse(self.store.path.exists())
        self.assertEqual(self.auth_failures, [True])

    def test_second_401_after_refresh_is_not_retried_again(self):
        self.store.save({"id": 1}, "old")
        self.route("GET", "/memes", lambda r: httpx.Response(401))
        self.route("POST", "/auth/refresh-token", lambda r: httpx.Response(
            200, json={"data": {"token": "new"}}
        ))

        with self.assertRaises(ApiAuthError):
            self.client.get("/memes")

        paths = [c.url.path for c in self.calls]
        self.assertEqual(paths.count("/api/memes"), 2)
        self.assertEqual(paths.count("/api/auth/refresh-token"), 1)
        self.assertEqual(self.auth_failures, [True])

    def test_401_without_token_skips_refresh(self):
        self.route("GET", "/memes", lambda r: httpx.Response(401))
        with self.assertRaises(ApiAuthError):
            self.client.get("/memes")
        self.assertEqual([c.url.path for c in self.calls], ["/api/memes"])


class TestAuthService(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.auth = AuthService(self.client, self.store)

    def test_sign_in_persists_session(self):
        self.route("POST", "/auth/login", lambda r: httpx.Response(
            200, json={"data": {"user": {"username": "pepe"}, "token": "t1"}}
        ))
        user = self.auth.sign_in("pepe@example.com", "secret")

        self.assertEqual(user, {"username": "pepe"})
        self.assertTrue(self.auth.is_authenticated)
        self.assertEqual(json.loads(self.calls[0].content)["email"], "pepe@example.com")

        restored = SessionStore(self.store.path)
        self.assertTrue(restored.load())
        self.assertEqual(restored.token, "t1")

    def test_sign_in_rejected(self):
        self.route("POST", "/auth/login", lambda r: httpx.Response(
            401, json={"message": "Invalid credentials"}
        ))
        with self.assertRaises(ApiError) as ctx:
            self.auth.sign_in("a@b.c", "nope")

        self.assertNotIsInstance(ctx.exception, ApiAuthError)
        self.assertEqual(ctx.exception.message, "Invalid credentials")
        self.assertEqual(ctx.exception.status, 401)
        self.assertFalse(self.auth.is_authenticated)
        self.assertEqual(self.auth_failures, [])
        self.assertEqual([c.url.path for c in self.calls], ["/api/auth/login"])

    def test_wrong_password_keeps_existing_session(self):
        self.store.save({"id": 1}, "t1")
        self.route("POST", "/auth/login", lambda r: httpx.Response(
            401, json={"message": "Invalid credentials"}
        ))
        with self.assertRaises(ApiError):
            self.auth.sign_in("a@b.c", "nope")
        self.assertEqual(self.store.token, "t1")
        self.assertEqual(self.auth_failures, [])

    def test_sign_out_with_expired_token_does_not_prompt(self):
        self.store.save({"id": 1}, "t1")
        self.route("POST", "/auth/logout", lambda r: httpx.Response(401))
        self.auth.sign_out()
        self.assertFalse(self.auth.is_authenticated)
        self.assertEqual(self.auth_failures, [])

    def test_sign_in_without_token_is_invalid(self):
        self.route("POST", "/auth/login", lambda r: httpx.Response(200, json={"data": {}}))
        with self.assertRaises(InvalidResponseError):
            self.auth.sign_in("a@b.c", "pw")

    def test_sign_out_clears_even_if_backend_fails(self):
        self.store.save({"id": 1}, "t1")
        self.route("POST", "/auth/logout", lambda r: httpx.Response(500))
        self.auth.sign_out()
        self.assertFalse(self.auth.is_authenticated)

    def test_refresh_if_expiring(self):
        self.store.save({"id": 1}, make_jwt(time.time() + 60))
        self.route("POST", "/auth/refresh-token", lambda r: httpx.Response(
            200, json={"data": {"token": make_jwt(time.time() + 86400)}}
        ))
        self.assertTrue(self.auth.refresh_if_expiring())
        self.assertFalse(token_expires_soon(self.store.token))

    def test_fresh_token_not_refreshed(self):
        self.store.save({"id": 1}, make_jwt(time.time() + 86400))
        self.assertFalse(self.auth.refresh_if_expiring())
        self.assertEqual(self.calls, [])

    def test_refresh_token_keeps_user(self):
        self.store.save({"id": 1}, "old")
        self.route("POST", "/auth/refresh-token", lambda r: httpx.Response(
            200, json={"data": {"token": "new"}}
        ))
        self.assertTrue(self.auth.refresh_token())
        self.assertEqual(self.store.token, "new")
        self.assertEqual(self.store.user, {"id": 1})
        self.assertEqual(self.calls[0].headers["Authorization"], "Bearer old")

    def test_refresh_token_signed_out(self):
        self.assertFalse(self.auth.refresh_token())
        self.assertEqual(self.calls, [])

    def test_token_expiry_unreadable(self):
        self.assertIsNone(token_expiry("not-a-jwt"))
        self.assertFalse(token_expires_soon("not-a-jwt"))


class TestMemeService(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.store.save({"id": 1}, "tok")
        self.service = MemeService(self.client)

    def test_generate_image(self):
        self.route("POST", "/images/generate", lambda r: httpx.Response(200, json={"image": {
            "url": "/assets/generated/cat.png",
            "prompt": "a cat",
            "style": "anime",
            "modelUsed": "dall-e-3",
            "createdAt": "2024-01-01T00:00:00Z",
            "is_public": True,
        }}))

        metadata = self.service.generate_image("a cat", "anime", "dall-e-3")

        self.assertEqual(metadata.url, "/assets/generated/cat.png")
        self.assertEqual(metadata.model_used, "dall-e-3")
        self.assertTrue(metadata.is_public)
        body = json.loads(self.calls[0].content)
        self.assertEqual(body, {"prompt": "a cat", "style": "anime",
                                "model": "dall-e-3", "is_public": False})

    def test_generate_image_missing_url(self):
        self.route("POST", "/images/generate", lambda r: httpx.Response(200, json={"image": {
            "prompt": "a cat", "style": "anime", "modelUsed": "dall-e-3",
        }}))
        with self.assertRaises(InvalidResponseError):
            self.service.generate_image("a cat", "anime", "dall-e-3")

    def test_metadata_requires_image_object(self):
        with self.assertRaises(InvalidResponseError):
            GeneratedImageMetadata.from_response({"url": "x"})

    def test_save_meme_multipart(self):
        self.route("POST", "/memes", lambda r: httpx.Response(201, json={"meme": {"id": 7}}))
        metadata = GeneratedImageMetadata(
            url="/assets/generated/cat.png", prompt="a cat", style="anime", model_used="dall-e-3"
        )

        result = self.service.save_meme(
            b"\x89PNG fake",
            [{"id": 1, "text": "Hi", "fontSize": 32}],
            SaveMemeRequest(title="  Cat  ", description="desc", is_public=True),
            metadata,
        )

        self.assertEqual(result, {"meme": {"id": 7}})
        request = self.calls[0]
        self.assertTrue(request.headers["Content-Type"].startswith("multipart/form-data"))
        content = request.content
        self.assertIn(b'name="image"; filename="meme.png"', content)
        self.assertIn(b"\x89PNG fake", content)
        self.assertIn(b'name="title"\r\n\r\nCat\r\n', content)
        self.assertIn(b'name="is_public"\r\n\r\ntrue\r\n', content)
        self.assertIn(b'name="modelUsed"\r\n\r\ndall-e-3\r\n', content)
        self.assertIn(b'"fontSize": 32', content)

    def test_save_meme_without_metadata_omits_ai_fields(self):
        self.route("POST", "/memes", lambda r: httpx.Response(201, json={}))
        self.service.save_meme(b"png", [], SaveMemeRequest(title="t"))
        self.assertNotIn(b'name="prompt"', self.calls[0].content)


class TestSaveMemeRequest(unittest.TestCase):

    def test_limits(self):
        self.assertIsNone(SaveMemeRequest(title="x" * 100, description="y" * 500).validate())
        self.assertIsNotNone(SaveMemeRequest(title="x" * 101).validate())
        self.assertIsNotNone(SaveMemeRequest(description="y" * 501).validate())


if __name__ == "__main__":
    unittest.main()
