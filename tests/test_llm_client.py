import json
import unittest

import httpx

from src.config import Settings
from src.services.llm_client import ConfigurationError, LLMClient, LLMError, strip_code_fences


def _settings(**overrides):
    values = {"openai_api_key": "test-key", "openai_base_url": "https://llm.test/v1/"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestStripCodeFences(unittest.TestCase):

    def test_strips_json_fence(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_plain_text_untouched(self):
        self.assertEqual(strip_code_fences('  {"a": 1} '), '{"a": 1}')


class TestLLMClient(unittest.IsolatedAsyncioTestCase):

    def test_missing_key_fails_fast(self):
        with self.assertRaises(ConfigurationError):
            LLMClient(Settings(openai_api_key="", _env_file=None))

    async def test_complete_sends_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion("  What is the job title?  "))

        client = LLMClient(_settings(), transport=httpx.MockTransport(handler))
        reply = await client.complete([{"role": "user", "content": "hi"}], max_tokens=50, json_mode=True)

        self.assertEqual(reply, "What is the job title?")
        self.assertEqual(seen["url"], "https://llm.test/v1/chat/completions")
        self.assertEqual(seen["auth"], "Bearer test-key")
        self.assertEqual(seen["body"]["model"], "gpt-4o")
        self.assertEqual(seen["body"]["max_tokens"], 50)
        self.assertEqual(seen["body"]["temperature"], 0.3)
        self.assertEqual(seen["body"]["response_format"], {"type": "json_object"})

    async def test_explicit_temperature_wins(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion("SKIP"))

        client = LLMClient(_settings(), transport=httpx.MockTransport(handler))
        await client.complete([{"role": "user", "content": "x"}], max_tokens=5, temperature=0.0)

        self.assertEqual(seen["body"]["temperature"], 0.0)
        self.assertNotIn("response_format", seen["body"])

    async def test_http_error_raises_llm_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
        client = LLMClient(_settings(), transport=transport)
        with self.assertRaises(LLMError):
            await client.complete([{"role": "user", "content": "x"}], max_tokens=5)

    async def test_connection_error_raises_llm_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = LLMClient(_settings(), transport=httpx.MockTransport(handler))
        with self.assertRaises(LLMError):
            await client.complete([{"role": "user", "content": "x"}], max_tokens=5)

    async def test_malformed_body_raises_llm_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
        client = LLMClient(_settings(), transport=transport)
        with self.assertRaises(LLMError):
            await client.complete([{"role": "user", "content": "x"}], max_tokens=5)

    async def test_empty_content_raises_llm_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=_completion("   ")))
        client = LLMClient(_settings(), transport=transport)
        with self.assertRaises(LLMError):
            await client.complete([{"role": "user", "content": "x"}], max_tokens=5)


if __name__ == "__main__":
    unittest.main()
