import json
import unittest

import httpx

from chat_relay.config import Settings
from chat_relay.exceptions import UpstreamError
from chat_relay.models import NO_CANDIDATE_RESPONSE
from chat_relay.upstream import GeminiClient, extract_text


class TestExtractText(unittest.TestCase):
    def test_documented_path(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "Hi there!"}]}}]}
        self.assertEqual(extract_text(payload), "Hi there!")

    def test_only_first_candidate_and_part_are_used(self):
        payload = {
            "candidates": [
                {"content": {"parts": [{"text": "first"}, {"text": "second"}]}},
                {"content": {"parts": [{"text": "other"}]}},
            ]
        }
        self.assertEqual(extract_text(payload), "first")

    def test_malformed_shapes_fall_back(self):
        for payload in (
            None,
            [],
            {"candidates": None},
            {"candidates": [{}]},
            {"candidates": [{"content": {}}]},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{"text": None}]}}]},
        ):
            with self.subTest(payload=payload):
                self.assertEqual(extract_text(payload), NO_CANDIDATE_RESPONSE)


class TestGeminiClient(unittest.IsolatedAsyncioTestCase):
    def make_client(self, handler, model="gemini-pro"):
        return GeminiClient(
            api_key="secret",
            model=model,
            base_url="https://example.test/",
            transport=httpx.MockTransport(handler),
        )

    def test_from_settings_without_key(self):
        self.assertIsNone(GeminiClient.from_settings(Settings()))

    def test_from_settings(self):
        client = GeminiClient.from_settings(Settings(gemini_api_key="k", gemini_model="gemini-1.5-flash"))
        self.assertEqual(
            client.endpoint,
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent",
        )

    async def test_generate_sends_single_message(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "pong"}]}}]})

        reply = await self.make_client(handler).generate("ping")

        self.assertEqual(reply, "pong")
        self.assertEqual(str(seen[0].url), "https://example.test/v1beta/models/gemini-pro:generateContent?key=secret")
        self.assertEqual(json.loads(seen[0].content), {"contents": [{"parts": [{"text": "ping"}]}]})

    async def test_error_status_raises(self):
        client = self.make_client(lambda request: httpx.Response(429, json={"error": "quota"}))

        with self.assertRaises(UpstreamError) as ctx:
            await client.generate("ping")
        self.assertEqual(ctx.exception.details["status_code"], 429)
        self.assertIn("429", ctx.exception.message)

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaises(UpstreamError):
            await self.make_client(handler).generate("ping")

    async def test_non_json_body_raises(self):
        client = self.make_client(lambda request: httpx.Response(200, text="<html>"))
        with self.assertRaises(UpstreamError):
            await client.generate("ping")

    async def test_no_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with self.assertRaises(UpstreamError):
            await self.make_client(handler).generate("ping")
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
