"""
Analysis Module - Arsenal Module
Runs one lease analysis: validate, invoke model, sanitize or fall back, persist.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from lib.errors import AnalysisValidationError, FailureKind, MalformedReplyError, ModelClientError
from lib.fallback import synthesize
from lib.models import (
    DEFAULT_FILE_NAME,
    DEFAULT_LOCATION,
    FALLBACK_ANALYSIS_VERSION,
    MODEL_ANALYSIS_VERSION,
    AnalysisRecord,
    LeaseAssessment,
)
from lib.sanitizer import sanitize
from lib.storage import AnalysisRepository

logger = logging.getLogger(__name__)

MIN_LEASE_TEXT_LENGTH = 50


class ModelClient(Protocol):
    async def invoke(self, lease_text: str, location: Optional[str]) -> str: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _or_default(value: Optional[str], default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


class LeaseAnalysisService:
    """
    State machine per call:
    Validated -> ModelInvoked -> (Sanitized | Fallback) -> Persisted -> Returned
    """

    def __init__(
        self,
        model_client: ModelClient,
        repository: AnalysisRepository,
        min_text_length: int = MIN_LEASE_TEXT_LENGTH,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.model_client = model_client
        self.repository = repository
        self.min_text_length = min_text_length
        self.clock = clock
        self.id_factory = id_factory

    def validate(self, lease_text: Optional[str]) -> str:
        if not isinstance(lease_text, str) or len(lease_text.strip()) < self.min_text_length:
            raise AnalysisValidationError(
                "Lease text is required and must be substantial for analysis"
            )
        return lease_text

    async def assess(self, lease_text: str, location: Optional[str]) -> tuple[LeaseAssessment, bool]:
        """Return (assessment, ai_powered). Never raises for upstream failures."""
        try:
            raw_reply = await self.model_client.invoke(lease_text, location)
        except ModelClientError as exc:
            logger.warning("Model invocation failed (%s): %s", exc.kind.value, exc)
            return synthesize(exc.kind), False
        except Exception:
            logger.exception("Unexpected model client failure")
            return synthesize(FailureKind.UNAVAILABLE), False

        try:
            return sanitize(raw_reply), True
        except MalformedReplyError as exc:
            logger.warning("Model reply rejected: %s", exc)
            logger.debug("Raw reply: %s", raw_reply)
            return synthesize(FailureKind.MALFORMED_REPLY), False

    async def run_analysis(
        self,
        user_id: str,
        lease_text: Optional[str],
        file_name: Optional[str] = None,
        location: Optional[str] = None,
    ) -> AnalysisRecord:
        lease_text = self.validate(lease_text)
        logger.info("Starting lease analysis for user %s", user_id)

        assessment, ai_powered = await self.assess(lease_text, location)

        record = AnalysisRecord.from_assessment(
            assessment,
            record_id=self.id_factory(),
            user_id=user_id,
            file_name=_or_default(file_name, DEFAULT_FILE_NAME),
            location=_or_default(location, DEFAULT_LOCATION),
            analysis_date=self.clock().isoformat(),
            ai_powered=ai_powered,
            analysis_version=MODEL_ANALYSIS_VERSION if ai_powered else FALLBACK_ANALYSIS_VERSION,
        )

        # Record first, then index, then profile; the store has no transactions.
        await self.repository.save_record(record)
        await self.repository.append_to_history(user_id, record.id)
        if not await self.repository.record_usage(user_id, self.clock().isoformat()):
            logger.warning("No profile for user %s; usage count not updated", user_id)

        logger.info(
            "Lease analysis %s completed for user %s with score %s (aiPowered=%s)",
            record.id,
            user_id,
            record.overall_score,
            record.ai_powered,
        )
        return record
