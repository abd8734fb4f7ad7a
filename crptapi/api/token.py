"""Bearer token cache backed by the certificate signing exchange."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError as PydanticValidationError

from ..config import AUTH_KEY_PATH, AUTH_TOKEN_PATH, BASE_URL, SUCCESS_STATUS_CODES, TOKEN_LIFETIME
from ..documents.envelope import AuthKey
from ..errors import AuthenticationError, TransportError
from .transport import Response, Transport

logger = logging.getLogger(__name__)

HEADER_PREFIX = "Bearer "

# (key data, caller signature) -> signed data
KeySigner = Callable[[str, str], str]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def encode_key_data(data: str, signature: str) -> str:
    """Default key signer: base64 of the UTF-8 key data.

    The qualified electronic signature itself is produced outside this client;
    pass a different signer to ``TokenCache`` to apply it here.
    """
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class Credential:
    """An issued bearer token and the moment it stops being accepted."""

    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at

    @property
    def header(self) -> str:
        return f"{HEADER_PREFIX}{self.token}"


class TokenCache:
    """Lazily refreshed bearer credential.

    Concurrent callers that find the credential missing or expired queue on
    a single lock; the first one runs the signing exchange and the rest
    reuse the credential it stored.
    """

    def __init__(
        self,
        transport: Transport,
        base_url: str = BASE_URL,
        *,
        lifetime: timedelta = TOKEN_LIFETIME,
        signer: KeySigner = encode_key_data,
        clock: Clock = utcnow,
    ):
        self._transport = transport
        self._base_url = base_url.rstrip("/")
        self._lifetime = lifetime
        self._signer = signer
        self._clock = clock
        self._credential: Credential | None = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def is_valid(self) -> bool:
        credential = self._credential
        return credential is not None and credential.is_valid(self._clock())

    def invalidate(self) -> None:
        """Drop the cached credential; the next call runs the exchange again."""
        self._credential = None

    async def get_auth_header(self, signature: str) -> str:
        """Return an ``Authorization`` header value, refreshing if needed.

        Args:
            signature: Caller's signature, handed to the key signer

        Returns:
            ``"Bearer <token>"``

        Raises:
            AuthenticationError: If the signing exchange fails
        """
        credential = self._credential
        if credential is not None and credential.is_valid(self._clock()):
            return credential.header

        async with self._lock:
            # Another caller may have refreshed while we waited.
            credential = self._credential
            if credential is None or not credential.is_valid(self._clock()):
                credential = await self._refresh(signature)
                self._credential = credential
        return credential.header

    async def _refresh(self, signature: str) -> Credential:
        logger.info("refreshing bearer token")
        unsigned = await self._fetch_key()
        try:
            signed_data = self._signer(unsigned.data, signature)
        except Exception as e:
            raise AuthenticationError(f"signing key data failed: {e}") from e
        token = await self._exchange(AuthKey(uuid=unsigned.uuid, data=signed_data))

        credential = Credential(token=token, expires_at=self._clock() + self._lifetime)
        logger.info("bearer token issued", extra={"expires_at": credential.expires_at.isoformat()})
        return credential

    async def _fetch_key(self) -> AuthKey:
        response = await self._call("GET", AUTH_KEY_PATH)
        try:
            return AuthKey.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AuthenticationError(
                f"malformed key response: {e}", status_code=response.status_code
            ) from e

    async def _exchange(self, signed: AuthKey) -> str:
        response = await self._call("POST", AUTH_TOKEN_PATH, json_body=signed.model_dump())
        try:
            payload = response.json()
        except ValueError as e:
            raise AuthenticationError(
                f"malformed token response: {e}", status_code=response.status_code
            ) from e

        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthenticationError("token response has no token", status_code=response.status_code)
        return token

    async def _call(self, method: str, path: str, **kwargs) -> Response:
        url = f"{self._base_url}{path}"
        try:
            response = await self._transport.request(method, url, **kwargs)
        except TransportError as e:
            logger.warning("auth request failed", extra={"url": url, "reason": e.reason})
            raise AuthenticationError(str(e)) from e

        if response.status_code not in SUCCESS_STATUS_CODES:
            logger.warning("auth request rejected", extra={"url": url, "status": response.status_code})
            raise AuthenticationError(
                f"{method} {path} returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response
