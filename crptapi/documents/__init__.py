"""Document schema and request/response envelopes."""

from .envelope import (
    AuthKey,
    CreateDocumentRequest,
    CreateDocumentResponse,
    ErrorResponse,
    encode_document,
)
from .models import (
    CertificateDocument,
    Description,
    DocumentFormat,
    DocumentType,
    IntroduceGoodsDocument,
    Product,
    ProductGroup,
    ProductionType,
)

__all__ = [
    "AuthKey",
    "CreateDocumentRequest",
    "CreateDocumentResponse",
    "ErrorResponse",
    "encode_document",
    "CertificateDocument",
    "Description",
    "DocumentFormat",
    "DocumentType",
    "IntroduceGoodsDocument",
    "Product",
    "ProductGroup",
    "ProductionType",
]
