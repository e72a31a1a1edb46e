"""Gemini analysis/caption and Nano Banana face swap clients against simulated providers."""

from __future__ import annotations

import json
import unittest
from unittest import mock

import httpx

from billboard import gemini, nanobanana
from billboard.errors import (
    ConfigurationError,
    MalformedResponseError,
    ModerationRefusal,
    TransportError,
)
from billboard.prompts import DEFAULT_BILLBOARD_MESSAGE, FACE_SWAP_PROMPT

ANALYSIS_JSON = {
    "wittyComment": "오늘의 주인공이시네요.",
    "mood": "elegant",
    "dominantColor": "dark navy",
    "suggestedMoods": ["luxury", "warm", "classic"],
}


def _text_response(text: str, finish_reason: str = "STOP") -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}]}


def _transport(status: int = 200, payload: object = None, text: str | None = None, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


class AnalyzeUserTest(unittest.IsolatedAsyncioTestCase):
    async def test_parses_plain_json(self) -> None:
        seen: list = []
        analysis = await gemini.analyze_user(
            "QUJD",
            api_key="k",
            transport=_transport(payload=_text_response(json.dumps(ANALYSIS_JSON)), seen=seen),
        )

        self.assertEqual(analysis.mood, "elegant")
        self.assertEqual(analysis.suggested_moods, ["luxury", "warm", "classic"])
        self.assertEqual(analysis.mood_text(), "elegant luxury warm classic")

        request = seen[0]
        self.assertIn("gemini-2.0-flash:generateContent", request.url.path)
        self.assertEqual(request.url.params["key"], "k")
        body = json.loads(request.content)
        image_part = body["contents"][0]["parts"][0]["inline_data"]
        self.assertEqual(image_part, {"mime_type": "image/jpeg", "data": "QUJD"})

    async def test_unwraps_code_fence(self) -> None:
        fenced = "Here you go:\n```json\n" + json.dumps(ANALYSIS_JSON) + "\n```"
        analysis = await gemini.analyze_user(
            "QUJD", api_key="k", transport=_transport(payload=_text_response(fenced))
        )
        self.assertEqual(analysis.dominant_color, "dark navy")

    async def test_joins_split_text_parts(self) -> None:
        raw = json.dumps(ANALYSIS_JSON)
        payload = {"candidates": [{"content": {"parts": [{"text": raw[:10]}, {"text": raw[10:]}]}}]}
        analysis = await gemini.analyze_user("QUJD", api_key="k", transport=_transport(payload=payload))
        self.assertEqual(analysis.witty_comment, ANALYSIS_JSON["wittyComment"])

    async def test_missing_field_is_malformed(self) -> None:
        partial = {k: v for k, v in ANALYSIS_JSON.items() if k != "dominantColor"}
        with self.assertRaises(MalformedResponseError):
            await gemini.analyze_user(
                "QUJD", api_key="k", transport=_transport(payload=_text_response(json.dumps(partial)))
            )

    async def test_empty_field_is_malformed(self) -> None:
        empty = dict(ANALYSIS_JSON, mood="")
        with self.assertRaises(MalformedResponseError):
            await gemini.analyze_user(
                "QUJD", api_key="k", transport=_transport(payload=_text_response(json.dumps(empty)))
            )

    async def test_unparsable_text_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            await gemini.analyze_user(
                "QUJD", api_key="k", transport=_transport(payload=_text_response("I love your style!"))
            )

    async def test_no_text_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            await gemini.analyze_user("QUJD", api_key="k", transport=_transport(payload={"candidates": []}))

    async def test_http_error_names_provider_and_status(self) -> None:
        with self.assertRaises(TransportError) as ctx:
            await gemini.analyze_user(
                "QUJD", api_key="k", transport=_transport(status=503, text="overloaded")
            )
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.body, "overloaded")
        self.assertIn("Gemini", str(ctx.exception))
        self.assertIn("503", str(ctx.exception))

    async def test_missing_key_fails_before_any_request(self) -> None:
        seen: list = []
        with mock.patch.dict("os.environ", {"GEMINI_API_KEY": ""}):
            with self.assertRaises(ConfigurationError) as ctx:
                await gemini.analyze_user("QUJD", transport=_transport(payload={}, seen=seen))
        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(seen, [])

    async def test_key_read_from_environment(self) -> None:
        seen: list = []
        with mock.patch.dict("os.environ", {"GEMINI_API_KEY": "env-key"}):
            await gemini.analyze_user(
                "QUJD",
                transport=_transport(payload=_text_response(json.dumps(ANALYSIS_JSON)), seen=seen),
            )
        self.assertEqual(seen[0].url.params["key"], "env-key")

    async def test_network_failure_is_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(TransportError) as ctx:
            await gemini.analyze_user("QUJD", api_key="k", transport=httpx.MockTransport(handler))
        self.assertIsNone(ctx.exception.status_code)


class BillboardMessageTest(unittest.IsolatedAsyncioTestCase):
    async def test_returns_trimmed_tagline(self) -> None:
        seen: list = []
        message = await gemini.generate_billboard_message(
            "Woman with horse", api_key="k", transport=_transport(payload=_text_response("  빛나는 당신  "), seen=seen)
        )
        self.assertEqual(message, "빛나는 당신")
        self.assertIn("Woman with horse", seen[0].content.decode())

    async def test_http_error_degrades_to_default(self) -> None:
        message = await gemini.generate_billboard_message(
            "x", api_key="k", transport=_transport(status=500, text="boom")
        )
        self.assertEqual(message, DEFAULT_BILLBOARD_MESSAGE)

    async def test_refusal_degrades_to_default(self) -> None:
        message = await gemini.generate_billboard_message(
            "x", api_key="k", transport=_transport(payload=_text_response("", "SAFETY"))
        )
        self.assertEqual(message, DEFAULT_BILLBOARD_MESSAGE)

    async def test_empty_text_degrades_to_default(self) -> None:
        message = await gemini.generate_billboard_message(
            "x", api_key="k", transport=_transport(payload={"candidates": []})
        )
        self.assertEqual(message, DEFAULT_BILLBOARD_MESSAGE)


def _image_response(key: str, data: str = "SU1BR0U=") -> dict:
    inner = {"mimeType": "image/png", "data": data} if key == "inlineData" else {"mime_type": "image/png", "data": data}
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": "Here is your image"}, {key: inner}]},
                "finishReason": "STOP",
            }
        ]
    }


class FaceSwapTest(unittest.IsolatedAsyncioTestCase):
    async def test_camel_and_snake_case_parse_identically(self) -> None:
        camel = await nanobanana.face_swap(
            "VVNFUg==", "VEVNUA==", api_key="k", transport=_transport(payload=_image_response("inlineData"))
        )
        snake = await nanobanana.face_swap(
            "VVNFUg==", "VEVNUA==", api_key="k", transport=_transport(payload=_image_response("inline_data"))
        )
        self.assertEqual(camel, snake)
        self.assertEqual(camel, "data:image/jpeg;base64,SU1BR0U=")

    async def test_snake_case_checked_first(self) -> None:
        payload = {
            "candidates": [{
                "content": {"parts": [{"inline_data": {"data": "U05BS0U="}, "inlineData": {"data": "Q0FNRUw="}}]},
            }]
        }
        image = await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=payload))
        self.assertEqual(image, "data:image/jpeg;base64,U05BS0U=")

    async def test_request_echoes_template_mime_and_frozen_prompt(self) -> None:
        seen: list = []
        await nanobanana.face_swap(
            "VVNFUg==",
            "VEVNUA==",
            "image/webp",
            api_key="k",
            transport=_transport(payload=_image_response("inlineData"), seen=seen),
        )
        request = seen[0]
        self.assertIn("nano-banana-pro-preview:generateContent", request.url.path)
        parts = json.loads(request.content)["contents"][0]["parts"]
        self.assertEqual(parts[0]["inline_data"], {"mime_type": "image/jpeg", "data": "VVNFUg=="})
        self.assertEqual(parts[1]["inline_data"], {"mime_type": "image/webp", "data": "VEVNUA=="})
        self.assertEqual(parts[2]["text"], FACE_SWAP_PROMPT)

    async def test_safety_refusal_is_distinct_from_transport_error(self) -> None:
        refusal = {"candidates": [{"content": {"parts": []}, "finishReason": "SAFETY"}]}
        with self.assertRaises(ModerationRefusal) as refused:
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=refusal))
        self.assertEqual(refused.exception.finish_reason, "SAFETY")
        self.assertNotIsInstance(refused.exception, TransportError)

        with self.assertRaises(TransportError) as failed:
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(status=500, text="oops"))
        self.assertNotIsInstance(failed.exception, ModerationRefusal)
        self.assertIn("Nanobanana", str(failed.exception))
        self.assertIn("500", str(failed.exception))

    async def test_other_refusal(self) -> None:
        refusal = {"candidates": [{"finishReason": "OTHER"}]}
        with self.assertRaises(ModerationRefusal):
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=refusal))

    async def test_blocked_prompt_is_refusal(self) -> None:
        blocked = {"promptFeedback": {"blockReason": "PROHIBITED_CONTENT"}}
        with self.assertRaises(ModerationRefusal):
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=blocked))

    async def test_no_image_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            await nanobanana.face_swap(
                "a", "b", api_key="k", transport=_transport(payload=_text_response("I can't do that"))
            )

    async def test_non_json_body_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(text="<html>"))


class UnexpectedBodyShapeTest(unittest.IsolatedAsyncioTestCase):
    async def test_non_object_body_is_malformed(self) -> None:
        for payload in ([], "text", 42):
            with self.subTest(payload=payload):
                with self.assertRaises(MalformedResponseError):
                    await gemini.analyze_user("QUJD", api_key="k", transport=_transport(payload=payload))

    async def test_odd_candidate_shapes_are_malformed(self) -> None:
        payloads = [
            {"candidates": "none"},
            {"candidates": ["not a dict"]},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": [{"text": 5}]}}]},
            {"promptFeedback": "blocked"},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(MalformedResponseError):
                    await gemini.analyze_user("QUJD", api_key="k", transport=_transport(payload=payload))

    async def test_odd_inline_data_is_malformed(self) -> None:
        payload = {
            "candidates": [{
                "content": {"parts": [{"inline_data": "SU1H"}, {"inlineData": {"data": 7}}]},
            }]
        }
        with self.assertRaises(MalformedResponseError):
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=payload))

    async def test_non_string_finish_reason(self) -> None:
        payload = {"candidates": [{"content": {"parts": []}, "finishReason": ["SAFETY"]}]}
        with self.assertRaises(MalformedResponseError):
            await nanobanana.face_swap("a", "b", api_key="k", transport=_transport(payload=payload))

    async def test_caption_survives_non_object_body(self) -> None:
        message = await gemini.generate_billboard_message("x", api_key="k", transport=_transport(payload=[]))
        self.assertEqual(message, DEFAULT_BILLBOARD_MESSAGE)

    async def test_caption_survives_any_decoding_failure(self) -> None:
        with mock.patch.object(gemini, "extract_text", side_effect=KeyError("text")):
            message = await gemini.generate_billboard_message(
                "x", api_key="k", transport=_transport(payload=_text_response("hello"))
            )
        self.assertEqual(message, DEFAULT_BILLBOARD_MESSAGE)
