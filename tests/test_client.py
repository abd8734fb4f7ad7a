"""Tests for the document submission pipeline."""

from __future__ import annotations

import asyncio
import base64
import json
import unittest
from contextlib import asynccontextmanager, contextmanager
from datetime import UTC, date, datetime
from typing import Any

from crptapi.api.client import CrptApiClient
from crptapi.api.gate import AdmissionGate
from crptapi.api.transport import Response
from crptapi.documents.models import Description, IntroduceGoodsDocument, Product, ProductGroup
from crptapi.errors import (
    AuthenticationError,
    ConfigurationError,
    DocumentSubmissionError,
    GateShutdownError,
    TransportError,
    ValidationError,
)

BASE = "https://api.test/v3"
CREATE_URL = f"{BASE}/lk/documents/create"


class _FakeTransport:
    """Answers the auth endpoints and replays queued creation responses."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.create_responses: list[Response | Exception] = []
        self.closed = False

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> Response:
        self.calls.append(
            {"method": method, "url": url, "json": json_body, "headers": headers, "params": params}
        )
        if url.endswith("/auth/cert/key"):
            return _json(url, 200, {"uuid": "u-1", "data": "challenge"})
        if url.endswith("/auth/cert/"):
            return _json(url, 200, {"token": "tok-1"})
        item = self.create_responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    def create_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["url"] == CREATE_URL]


def _json(url: str, status: int, payload: Any) -> Response:
    return Response(url=url, status_code=status, content=json.dumps(payload).encode())


def _document() -> IntroduceGoodsDocument:
    return IntroduceGoodsDocument(
        description=Description(participant_inn="7700000000"),
        doc_id="d-1",
        doc_type="LP_INTRODUCE_GOODS",
        import_request=True,
        owner_inn="7700000000",
        production_date=date(2024, 1, 15),
        products=[Product(tnved_code="6401", uit_code="010463")],
    )


class TestSubmit(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.transport = _FakeTransport()
        self.client = CrptApiClient(
            5,
            3600.0,
            base_url=BASE,
            transport=self.transport,
            clock=lambda: datetime(2024, 3, 1, tzinfo=UTC),
        )

    async def asyncTearDown(self) -> None:
        await self.client.close()

    async def test_created_document_value(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 201, {"value": "doc-123"}))

        result = await self.client.submit(_document(), "sig")

        self.assertEqual(result.value, "doc-123")

    async def test_envelope_and_headers(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": "doc-1"}))

        await self.client.submit(_document(), "sig-xyz")

        (call,) = self.transport.create_calls()
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["headers"], {"Authorization": "Bearer tok-1"})
        self.assertIsNone(call["params"])

        body = call["json"]
        self.assertEqual(
            sorted(body),
            ["document_format", "product_document", "signature", "type"],
        )
        self.assertEqual(body["document_format"], "MANUAL")
        self.assertEqual(body["type"], "LP_INTRODUCE_GOODS")
        self.assertEqual(body["signature"], "sig-xyz")

        decoded = json.loads(base64.b64decode(body["product_document"]))
        self.assertEqual(decoded["doc_id"], "d-1")
        self.assertIs(decoded["importRequest"], True)
        self.assertEqual(decoded["description"], {"participantInn": "7700000000"})
        self.assertEqual(decoded["production_date"], "2024-01-15")
        self.assertNotIn("reg_number", decoded)

    async def test_auth_runs_before_creation(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 202, {"value": "doc-1"}))
        await self.client.submit(_document(), "sig")
        self.assertEqual(
            [c["url"] for c in self.transport.calls],
            [f"{BASE}/auth/cert/key", f"{BASE}/auth/cert/", CREATE_URL],
        )

    async def test_token_reused_across_submissions(self) -> None:
        for i in range(3):
            self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": f"doc-{i}"}))
        for _ in range(3):
            await self.client.submit(_document(), "sig")
        self.assertEqual(len(self.transport.calls), 5)

    async def test_product_group_in_body_and_query(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": "doc-1"}))

        await self.client.submit(_document(), "sig", product_group="shoes")

        (call,) = self.transport.create_calls()
        self.assertEqual(call["json"]["product_group"], "shoes")
        self.assertEqual(call["params"], {"pg": "shoes"})

    async def test_mapping_document_accepted(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": "doc-1"}))

        await self.client.submit({"doc_id": "raw"}, "sig")

        (call,) = self.transport.create_calls()
        decoded = json.loads(base64.b64decode(call["json"]["product_document"]))
        self.assertEqual(decoded, {"doc_id": "raw"})

    async def test_create_document_for_introduce_goods_alias(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": "doc-9"}))
        result = await self.client.create_document_for_introduce_goods(_document(), "sig")
        self.assertEqual(result.value, "doc-9")


class TestSubmitFailures(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.transport = _FakeTransport()
        self.gate = AdmissionGate(2, 3600.0)
        self.client = CrptApiClient(base_url=BASE, transport=self.transport, gate=self.gate)

    async def asyncTearDown(self) -> None:
        await self.client.close()

    async def test_error_body_fields_carried_verbatim(self) -> None:
        self.transport.create_responses.append(
            _json(
                CREATE_URL,
                400,
                {"code": "BAD_REQUEST", "error_message": "invalid signature", "description": "..."},
            )
        )

        with self.assertRaises(DocumentSubmissionError) as ctx:
            await self.client.submit(_document(), "sig")

        err = ctx.exception
        self.assertEqual(err.status_code, 400)
        self.assertEqual(err.code, "BAD_REQUEST")
        self.assertEqual(err.message, "invalid signature")
        self.assertEqual(err.description, "...")

    async def test_non_json_error_body(self) -> None:
        self.transport.create_responses.append(
            Response(url=CREATE_URL, status_code=502, content=b"Bad Gateway")
        )
        with self.assertRaises(DocumentSubmissionError) as ctx:
            await self.client.submit(_document(), "sig")
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertIsNone(ctx.exception.code)
        self.assertEqual(ctx.exception.message, "Bad Gateway")

    async def test_numeric_error_code_kept(self) -> None:
        self.transport.create_responses.append(
            _json(CREATE_URL, 400, {"code": 400, "error_message": "bad", "description": "d"})
        )
        with self.assertRaises(DocumentSubmissionError) as ctx:
            await self.client.submit(_document(), "sig")
        self.assertEqual(ctx.exception.code, "400")
        self.assertEqual(ctx.exception.message, "bad")
        self.assertEqual(ctx.exception.description, "d")

    async def test_errors_pass_through_async_context_managers(self) -> None:
        @asynccontextmanager
        async def _scope():
            yield

        self.transport.create_responses.append(
            _json(CREATE_URL, 400, {"code": "BAD_REQUEST", "error_message": "invalid signature"})
        )
        with self.assertRaises(DocumentSubmissionError) as ctx:
            async with _scope():
                await self.client.submit(_document(), "sig")
        self.assertEqual(ctx.exception.code, "BAD_REQUEST")

        self.gate.replenish()
        self.transport.create_responses.append(TransportError(url=CREATE_URL, reason="reset"))
        with self.assertRaises(TransportError) as ctx2:
            async with _scope():
                await self.client.submit(_document(), "sig")
        self.assertEqual(ctx2.exception.reason, "reset")

    async def test_errors_pass_through_context_managers(self) -> None:
        @contextmanager
        def _scope():
            yield

        for err in (
            DocumentSubmissionError(status_code=400, code="X"),
            TransportError(url=CREATE_URL, reason="timed out"),
        ):
            with self.assertRaises(type(err)) as ctx:
                with _scope():
                    raise err
            self.assertIs(ctx.exception, err)

    async def test_unreadable_success_body(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 200, {"unexpected": True}))
        with self.assertRaises(DocumentSubmissionError):
            await self.client.submit(_document(), "sig")

    async def test_failed_call_still_consumes_permit(self) -> None:
        self.transport.create_responses.append(_json(CREATE_URL, 500, {"code": "INTERNAL"}))
        with self.assertRaises(DocumentSubmissionError):
            await self.client.submit(_document(), "sig")
        self.assertEqual(self.gate.available, 1)

    async def test_encoding_failure_spends_permit_without_network(self) -> None:
        with self.assertRaises(ValidationError):
            await self.client.submit({"when": object()}, "sig")
        with self.assertRaises(ValidationError):
            await self.client.submit(["not", "a", "document"], "sig")

        self.assertEqual(self.transport.calls, [])
        self.assertEqual(self.gate.available, 0)

    async def test_unknown_product_group(self) -> None:
        with self.assertRaises(ValidationError):
            await self.client.submit(_document(), "sig", product_group="spaceships")
        self.assertEqual(self.transport.calls, [])

    async def test_transport_error_propagates(self) -> None:
        self.transport.create_responses.append(TransportError(url=CREATE_URL, reason="timed out"))
        with self.assertRaises(TransportError):
            await self.client.submit(_document(), "sig")

    async def test_auth_failure_propagates(self) -> None:
        async def _broken(method: str, url: str, **kwargs: Any) -> Response:
            return _json(url, 401, {"error_message": "no cert"})

        self.transport.request = _broken  # type: ignore[method-assign]
        with self.assertRaises(AuthenticationError):
            await self.client.submit(_document(), "sig")
        self.assertEqual(self.gate.available, 1)

    async def test_third_submission_waits_for_window(self) -> None:
        for i in range(3):
            self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": f"doc-{i}"}))

        await self.client.submit(_document(), "sig")
        await self.client.submit(_document(), "sig")
        third = asyncio.create_task(self.client.submit(_document(), "sig"))
        await asyncio.sleep(0.01)
        self.assertFalse(third.done())
        self.assertEqual(len(self.transport.create_calls()), 2)

        self.gate.replenish()
        result = await asyncio.wait_for(third, timeout=1.0)
        self.assertEqual(result.value, "doc-2")

    async def test_close_fails_waiting_submissions(self) -> None:
        for _ in range(2):
            self.transport.create_responses.append(_json(CREATE_URL, 200, {"value": "doc"}))
        await self.client.submit(_document(), "sig")
        await self.client.submit(_document(), "sig")

        waiting = asyncio.create_task(self.client.submit(_document(), "sig"))
        await asyncio.sleep(0)
        await self.client.close()

        with self.assertRaises(GateShutdownError):
            await waiting
        self.assertTrue(self.transport.closed)


class TestClientConstruction(unittest.TestCase):
    def test_invalid_capacity(self) -> None:
        with self.assertRaises(ConfigurationError):
            CrptApiClient(0, 1.0, transport=_FakeTransport())

    def test_capacity_required_without_gate(self) -> None:
        with self.assertRaises(ConfigurationError):
            CrptApiClient(transport=_FakeTransport())

    def test_capacity_and_gate_are_exclusive(self) -> None:
        gate = AdmissionGate(3, 1.0)
        with self.assertRaises(ConfigurationError):
            CrptApiClient(5, gate=gate, transport=_FakeTransport())
        self.assertIs(CrptApiClient(gate=gate, transport=_FakeTransport()).gate, gate)

    def test_product_group_enum_values(self) -> None:
        self.assertEqual(ProductGroup("milk"), ProductGroup.MILK)


if __name__ == "__main__":
    unittest.main()
