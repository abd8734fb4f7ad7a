"""Rate-limited async client for the CRPT document submission API."""

__version__ = "0.1.0"

from .api import AdmissionGate, CrptApiClient, TokenCache
from .documents import IntroduceGoodsDocument, ProductGroup
from .errors import (
    AuthenticationError,
    ConfigurationError,
    CrptApiError,
    DocumentSubmissionError,
    GateShutdownError,
    TransportError,
    ValidationError,
)

__all__ = [
    "__version__",
    "AdmissionGate",
    "CrptApiClient",
    "TokenCache",
    "IntroduceGoodsDocument",
    "ProductGroup",
    "AuthenticationError",
    "ConfigurationError",
    "CrptApiError",
    "DocumentSubmissionError",
    "GateShutdownError",
    "TransportError",
    "ValidationError",
]
