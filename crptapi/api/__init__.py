"""CRPT API access: admission gate, token cache and submission client."""

from .client import CrptApiClient
from .gate import AdmissionGate, Gate
from .token import Credential, TokenCache, encode_key_data
from .transport import Response, Transport

__all__ = [
    "AdmissionGate",
    "Credential",
    "CrptApiClient",
    "Gate",
    "Response",
    "TokenCache",
    "Transport",
    "encode_key_data",
]
