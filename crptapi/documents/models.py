"""Introduce-goods document schema and API enumerations."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentFormat(str, Enum):
    """Encoding of ``product_document`` in the creation envelope."""

    MANUAL = "MANUAL"
    XML = "XML"
    CSV = "CSV"


class DocumentType(str, Enum):
    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"
    LP_INTRODUCE_GOODS_CSV = "LP_INTRODUCE_GOODS_CSV"
    LP_INTRODUCE_GOODS_XML = "LP_INTRODUCE_GOODS_XML"


class ProductGroup(str, Enum):
    """Product group tag (also accepted as the ``pg`` query parameter)."""

    CLOTHES = "clothes"
    SHOES = "shoes"
    TOBACCO = "tobacco"
    PERFUMERY = "perfumery"
    TIRES = "tires"
    ELECTRONICS = "electronics"
    PHARMA = "pharma"
    MILK = "milk"
    BICYCLE = "bicycle"
    WHEELCHAIRS = "wheelchairs"


class ProductionType(str, Enum):
    OWN_PRODUCTION = "OWN_PRODUCTION"
    CONTRACT_PRODUCTION = "CONTRACT_PRODUCTION"


class CertificateDocument(str, Enum):
    CONFORMITY_CERTIFICATE = "CONFORMITY_CERTIFICATE"
    CONFORMITY_DECLARATION = "CONFORMITY_DECLARATION"


class Description(BaseModel):
    """Document description block."""

    model_config = ConfigDict(populate_by_name=True)

    participant_inn: str = Field(alias="participantInn")


class Product(BaseModel):
    """A single product line of an introduce-goods document."""

    certificate_document: CertificateDocument | None = None
    certificate_document_date: date | None = None
    certificate_document_number: str | None = None
    owner_inn: str | None = None
    producer_inn: str | None = None
    production_date: date | None = None
    tnved_code: str | None = None
    uit_code: str | None = None
    uitu_code: str | None = None


class IntroduceGoodsDocument(BaseModel):
    """Introduce-goods (domestic production) document.

    Serialized with wire names (``importRequest``, ``participantInn``) and
    ISO ``yyyy-MM-dd`` dates; unset fields are omitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    description: Description | None = None
    doc_id: str | None = None
    doc_status: str | None = None
    doc_type: str | None = None
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: str | None = None
    participant_inn: str | None = None
    producer_inn: str | None = None
    production_date: date | None = None
    production_type: ProductionType | None = None
    products: list[Product] = Field(default_factory=list)
    reg_date: date | None = None
    reg_number: str | None = None
