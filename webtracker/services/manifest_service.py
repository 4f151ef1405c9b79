"""
Hybrid manifest parsing: deterministic labels first, Gemini for the gaps.
"""

from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.domain.manifest_domain import Manifest
from webtracker.services.gemini_service import GeminiService, GeminiServiceError
from webtracker.services.label_parser import parse_labels

logger = get_logger(__name__)


class ManifestService:
    def __init__(self, gemini: GeminiService | None = None):
        self.gemini = gemini

    async def parse(self, text: str) -> Manifest:
        """
        Parse a chat message into a manifest.

        The label result is authoritative; Gemini only fills fields it left empty.
        LLM failures are logged and the label result is returned as is.
        """
        manifest = parse_labels(text)
        if manifest.is_complete or self.gemini is None or not self.gemini.is_configured:
            return manifest

        logger.info("Label parse incomplete, asking Gemini", missing=manifest.missing_fields)
        try:
            extracted = await self.gemini.extract(text)
        except GeminiServiceError as e:
            logger.warning(
                "Gemini extraction failed",
                error=str(e),
                error_type=type(e).__name__,
                recoverable=e.recoverable,
            )
            return manifest

        manifest.merge(extracted)
        manifest.check_required()
        return manifest
