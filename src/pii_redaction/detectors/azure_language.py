"""PII and language detection with the Azure AI Language REST API."""

import logging
from typing import List, Optional, Sequence

import httpx

from .base import BaseEntityDetector
from ..errors import DetectionChunkFailure
from ..http_retry import error_message, retry_policy
from ..models.entities import Entity, EntitySource, NERResult

logger = logging.getLogger(__name__)

API_VERSION = "2023-04-01"
DEFAULT_CHUNK_SIZE = 5000
LANGUAGE_SAMPLE_SIZE = 1000

DEFAULT_PII_CATEGORIES = (
    # Personal information
    "Person", "PersonType", "Email", "PhoneNumber", "Address",
    "DateOfBirth",
    # Financial
    "CreditCardNumber", "EUDebitCardNumber", "InternationalBankingAccountNumber",
    "SWIFTCode", "ABARoutingNumber", "USBankAccountNumber",
    # Government IDs
    "USSocialSecurityNumber", "USDriversLicenseNumber", "USPassportNumber",
    "EUDriversLicenseNumber", "EUPassportNumber", "EUNationalIdentificationNumber",
    "EUTaxIdentificationNumber", "EUGPSCoordinates",
    "AUDriversLicenseNumber", "AUMedicalAccountNumber", "AUPassportNumber", "AUTaxFileNumber",
    "CADriversLicenseNumber", "CAHealthServiceNumber", "CAPassportNumber", "CASocialInsuranceNumber",
    "CHSocialSecurityNumber",
    "CNResidentIdentityCardNumber",
    "INPermanentAccountNumber", "INUniqueIdentificationNumber",
    "JPDriversLicenseNumber", "JPPassportNumber", "JPResidentRegistrationNumber",
    "JPSocialInsuranceNumber",
    "NZDriversLicenseNumber", "NZSocialWelfareNumber",
    "UKDriversLicenseNumber", "UKNationalHealthNumber", "UKNationalInsuranceNumber",
    "UKPassportNumber",
    "ATIdentityCard", "ATTaxIdentificationNumber", "ATValueAddedTaxNumber",
    "BEDriversLicenseNumber", "BENationalNumber", "BEValueAddedTaxNumber",
    "BRCPFNumber", "BRLegalEntityNumber", "BRNationalIDRG",
    "BGUniformCivilNumber",
    "HRIdentityCardNumber", "HRNationalIDNumber", "HRPersonalIdentificationNumber",
    "CYIdentityCard", "CYTaxIdentificationNumber",
    "CZPersonalIdentityNumber",
    "DKPersonalIdentificationNumber",
    "EEPersonalIdentificationCode",
    "FIEuropeanHealthNumber", "FINationalID", "FIPassportNumber",
    "FRDriversLicenseNumber", "FRHealthInsuranceNumber", "FRNationalID", "FRPassportNumber",
    "FRSocialSecurityNumber", "FRTaxIdentificationNumber", "FRValueAddedTaxNumber",
    "DEDriversLicenseNumber", "DEPassportNumber", "DEIdentityCardNumber",
    "DETaxIdentificationNumber", "DEValueAddedTaxNumber",
    "GRNationalIDCard", "GRTaxIdentificationNumber",
    "HKIdentityCardNumber",
    "HUPersonalIdentificationNumber", "HUTaxIdentificationNumber", "HUValueAddedTaxNumber",
    "IEPersonalPublicServiceNumber",
    "ILBankAccountNumber", "ILNationalID",
    "ITDriversLicenseNumber", "ITFiscalCode",
    "LVPersonalCode",
    "LTPersonalCode",
    "LUNationalIdentificationNumberNatural", "LUNationalIdentificationNumberNonNatural",
    "MTIdentityCardNumber", "MTTaxIDNumber",
    "NLCitizensServiceNumber", "NLTaxIdentificationNumber", "NLValueAddedTaxNumber",
    "NOIdentityNumber",
    "PHUnifiedMultiPurposeIDNumber",
    "PLIdentityCard", "PLNationalID", "PLPassportNumber", "PLTaxIdentificationNumber",
    "PLREGONNumber",
    "PTCitizenCardNumber", "PTTaxIdentificationNumber",
    "ROPersonalNumericalCode",
    "RUPassportNumberDomestic", "RUPassportNumberInternational",
    "SANationalID",
    "SGNationalRegistrationIdentityCardNumber",
    "SKPersonalNumber",
    "SITaxIdentificationNumber", "SIUniqueMasterCitizenNumber",
    "ZAIdentificationNumber",
    "KRResidentRegistrationNumber",
    "ESDriversLicenseNumber", "ESSocialSecurityNumber", "ESTaxIdentificationNumber",
    "SEDriversLicenseNumber", "SENationalID", "SEPassportNumber", "SETaxIdentificationNumber",
    "CHTaxIdentificationNumber",
    "TRNationalIdentificationNumber",
    "UAPassportNumberDomestic", "UAPassportNumberInternational",
    # Organizations and network identifiers
    "Organization", "URL", "IPAddress",
)

_retry_policy = retry_policy(logger)


class AzureLanguageDetector(BaseEntityDetector):
    """Language detection and chunked PII recognition via ``:analyze-text``."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        client: Optional[httpx.Client] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        language_sample_size: int = LANGUAGE_SAMPLE_SIZE,
        pii_categories: Sequence[str] = DEFAULT_PII_CATEGORIES,
        timeout: float = 60.0,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.url = f"{endpoint.strip().rstrip('/')}/language/:analyze-text"
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout)
        self.chunk_size = chunk_size
        self.language_sample_size = language_sample_size
        self.pii_categories = list(pii_categories)

    def detect_language(self, text: str) -> str:
        """ISO 639-1 code of the first characters of ``text``; ``en`` on any failure."""
        body = {
            "kind": "LanguageDetection",
            "parameters": {},
            "analysisInput": {
                "documents": [{"id": "1", "text": text[:self.language_sample_size]}]
            },
        }
        try:
            data = self._analyze(body)
            language = data["results"]["documents"][0]["detectedLanguage"]["iso6391Name"]
        except Exception as e:
            logger.warning("Language detection failed, defaulting to %s: %s", self.default_language, e)
            return self.default_language

        language = language or self.default_language
        logger.info("Detected language: %s", language)
        return language

    def detect(self, text: str, language: str = "en") -> NERResult:
        """Analyse ``text`` in ``chunk_size`` pieces and return document-relative entities."""
        result = NERResult()
        total = -(-len(text) // self.chunk_size)
        if total > 1:
            logger.info("Text is %d chars, splitting into %d chunks", len(text), total)

        for number, start in enumerate(range(0, len(text), self.chunk_size), start=1):
            chunk = text[start:start + self.chunk_size]
            try:
                entities = self._detect_chunk(chunk, language, number, start)
            except DetectionChunkFailure as e:
                logger.warning(
                    "PII detection failed for chunk %d/%d (offset %d): %s",
                    e.chunk_index, total, e.chunk_offset, e,
                )
                result.dropped_chunks += 1
                continue

            logger.debug("Chunk %d/%d: %d entities", number, total, len(entities))
            result.entities.extend(entities)

        logger.info(
            "NER found %d entities (%d chunks dropped)",
            len(result.entities), result.dropped_chunks,
        )
        return result

    def _detect_chunk(self, chunk: str, language: str, number: int, start: int) -> List[Entity]:
        body = {
            "kind": "PiiEntityRecognition",
            "parameters": {
                "modelVersion": "latest",
                "domain": "none",
                "piiCategories": self.pii_categories,
            },
            "analysisInput": {
                "documents": [{"id": f"chunk-{number}", "language": language, "text": chunk}]
            },
        }
        try:
            data = self._analyze(body)
        except (httpx.HTTPError, ValueError) as e:
            raise DetectionChunkFailure(error_message(e), chunk_index=number, chunk_offset=start) from e

        try:
            documents = (data.get("results") or {}).get("documents") or []
            if not documents:
                errors = (data.get("results") or {}).get("errors") or []
                if errors:
                    raise DetectionChunkFailure(
                        str(errors[0].get("error", {}).get("message", errors[0])),
                        chunk_index=number,
                        chunk_offset=start,
                    )
                return []

            return [
                Entity.from_dict(item, source=EntitySource.NER).shifted(start)
                for item in documents[0].get("entities") or []
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DetectionChunkFailure(
                f"Malformed NER response: {e!r}", chunk_index=number, chunk_offset=start
            ) from e

    @_retry_policy
    def _analyze(self, body: dict) -> dict:
        response = self.client.post(
            self.url,
            params={"api-version": API_VERSION},
            json=body,
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
        )
        response.raise_for_status()
        return response.json()
