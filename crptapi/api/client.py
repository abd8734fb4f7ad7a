"""Rate-limited client for the CRPT document creation API."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..config import BASE_URL, DOCUMENT_CREATE_PATH, SUCCESS_STATUS_CODES, TOKEN_LIFETIME, WINDOW_SECONDS
from ..documents.envelope import (
    CreateDocumentRequest,
    CreateDocumentResponse,
    ErrorResponse,
    encode_document,
)
from ..documents.models import DocumentFormat, DocumentType, ProductGroup
from ..errors import ConfigurationError, DocumentSubmissionError, TransportError, ValidationError
from .gate import AdmissionGate, Gate
from .token import Clock, KeySigner, TokenCache, encode_key_data, utcnow
from .transport import Response, Transport

logger = logging.getLogger(__name__)


class CrptApiClient:
    """Async client that keeps document submissions within the API quota.

    Every ``submit`` call consumes one permit of the admission gate before
    doing anything else, so at most ``capacity`` calls are attempted per
    ``window`` seconds. A consumed permit is never returned, even when the
    call fails: the API counts failed attempts against the quota too.

    An injected ``gate`` replaces the built-in one and carries its own
    capacity, so ``capacity`` and ``window`` must then be left out.

    Example:
        async with CrptApiClient(capacity=10, window=1.0) as client:
            result = await client.submit(document, signature)
            print(result.value)
    """

    def __init__(
        self,
        capacity: int | None = None,
        window: float = WINDOW_SECONDS,
        *,
        base_url: str = BASE_URL,
        transport: Transport | None = None,
        gate: Gate | None = None,
        token_lifetime: timedelta = TOKEN_LIFETIME,
        signer: KeySigner = encode_key_data,
        clock: Clock = utcnow,
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport or Transport()
        if gate is None:
            self._gate: Gate = AdmissionGate(capacity, window)  # type: ignore[arg-type]
        elif capacity is not None:
            raise ConfigurationError("pass either capacity or a gate, not both")
        else:
            self._gate = gate
        self._tokens = TokenCache(
            self._transport,
            self.base_url,
            lifetime=token_lifetime,
            signer=signer,
            clock=clock,
        )

    @property
    def gate(self) -> Gate:
        return self._gate

    @property
    def tokens(self) -> TokenCache:
        return self._tokens

    async def submit(
        self,
        document: Any,
        signature: str,
        product_group: ProductGroup | str | None = None,
    ) -> CreateDocumentResponse:
        """Submit an introduce-goods document.

        Args:
            document: ``IntroduceGoodsDocument`` or a JSON-ready mapping
            signature: Detached signature of the encoded document
            product_group: Optional product group (body field and ``pg`` parameter)

        Returns:
            CreateDocumentResponse carrying the created document's id

        Raises:
            GateShutdownError: If the client closed while waiting for a permit
            ValidationError: If the document cannot be encoded
            AuthenticationError: If no bearer token could be obtained
            DocumentSubmissionError: If the API rejected the document
            TransportError: If the request never got a response
        """
        await self._gate.acquire()

        try:
            group = ProductGroup(product_group) if product_group is not None else None
        except ValueError as e:
            raise ValidationError(f"unknown product group: {product_group!r}") from e
        request = CreateDocumentRequest(
            document_format=DocumentFormat.MANUAL,
            product_document=encode_document(document),
            product_group=group,
            signature=signature,
            type=DocumentType.LP_INTRODUCE_GOODS,
        )

        auth_header = await self._tokens.get_auth_header(signature)

        url = f"{self.base_url}{DOCUMENT_CREATE_PATH}"
        try:
            response = await self._transport.request(
                "POST",
                url,
                json_body=request.to_wire(),
                headers={"Authorization": auth_header},
                params={"pg": group.value} if group is not None else None,
            )
        except TransportError as e:
            logger.warning("document creation request failed", extra={"url": url, "reason": e.reason})
            raise
        return _classify(response)

    # Name of the operation in the API documentation.
    create_document_for_introduce_goods = submit

    async def close(self) -> None:
        await self._gate.close()
        await self._transport.close()

    async def __aenter__(self) -> "CrptApiClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _classify(response: Response) -> CreateDocumentResponse:
    if response.status_code in SUCCESS_STATUS_CODES:
        try:
            result = CreateDocumentResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise DocumentSubmissionError(
                status_code=response.status_code,
                message=f"unreadable success body: {e}",
            ) from e
        logger.info("document created", extra={"value": result.value, "status": response.status_code})
        return result

    try:
        error = ErrorResponse.model_validate(response.json())
    except (ValueError, PydanticValidationError):
        error = ErrorResponse(error_message=response.text or None)

    logger.warning(
        "document creation rejected",
        extra={"status": response.status_code, "code": error.code},
    )
    raise DocumentSubmissionError(
        status_code=response.status_code,
        code=error.code,
        message=error.error_message,
        description=error.description,
    )
