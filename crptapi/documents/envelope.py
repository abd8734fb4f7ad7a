"""Request envelopes and response bodies for the CRPT API."""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..errors import ValidationError
from .models import DocumentFormat, DocumentType, ProductGroup


class AuthKey(BaseModel):
    """Key material of the signing exchange (unsigned or signed ``data``)."""

    uuid: str
    data: str


class CreateDocumentRequest(BaseModel):
    """Body of ``POST /lk/documents/create``."""

    model_config = ConfigDict(frozen=True)

    document_format: DocumentFormat
    product_document: str
    product_group: ProductGroup | None = None
    signature: str
    type: DocumentType

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready body; unset fields are left out."""
        return self.model_dump(mode="json", exclude_none=True)


class CreateDocumentResponse(BaseModel):
    """Success body: the identifier of the created document."""

    value: str


class ErrorResponse(BaseModel):
    """Structured error body returned with non-success statuses."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    code: str | None = None
    error_message: str | None = None
    description: str | None = None


def canonical_json(document: Any) -> bytes:
    """Serialize a document to its canonical JSON bytes.

    Pydantic models are dumped with their wire aliases and without unset
    fields; plain mappings are dumped as-is.

    Raises:
        ValidationError: If the document cannot be serialized
    """
    try:
        if isinstance(document, BaseModel):
            return document.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        if isinstance(document, Mapping):
            return json.dumps(dict(document), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ValidationError(f"document is not serializable: {e}") from e
    raise ValidationError(f"unsupported document type: {type(document).__name__}")


def encode_document(document: Any) -> str:
    """Base64-encode the canonical JSON form of a document."""
    return base64.b64encode(canonical_json(document)).decode("ascii")
