"""Abstract base class for entity detectors backed by an NER service."""

from abc import ABC, abstractmethod

from ..models.entities import NERResult


class BaseEntityDetector(ABC):
    """Interface for named-entity PII detectors."""

    default_language = "en"

    def detect_language(self, text: str) -> str:
        """
        Return the ISO 639-1 code of ``text``.

        Implementations without language detection report the default
        language. Implementations must never raise here; they fall back to
        ``default_language`` instead.
        """
        return self.default_language

    @abstractmethod
    def detect(self, text: str, language: str = "en") -> NERResult:
        """
        Detect PII entities in the full document text (synchronous).

        Args:
            text: Canonical document text; entity offsets index into it.
            language: ISO 639-1 language code of the text.

        Returns:
            NERResult with the entities found and the number of text chunks
            that could not be analysed.
        """
