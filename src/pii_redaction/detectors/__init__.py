"""PII, pattern and signature detection modules."""

from .azure_language import DEFAULT_PII_CATEGORIES, AzureLanguageDetector
from .base import BaseEntityDetector
from .patterns import DEFAULT_RULES, PatternDetectorBank, PatternRule
from .signature_model import SignatureModelClient
from .signatures import SIGNATURE_LABELS, SignatureDetector

__all__ = [
    "AzureLanguageDetector",
    "BaseEntityDetector",
    "DEFAULT_PII_CATEGORIES",
    "DEFAULT_RULES",
    "PatternDetectorBank",
    "PatternRule",
    "SIGNATURE_LABELS",
    "SignatureDetector",
    "SignatureModelClient",
]
