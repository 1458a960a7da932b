"""
History Module - Arsenal Module
Owner-scoped reads over stored analyses, plus the user's profile record.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from lib.errors import AnalysisForbiddenError, AnalysisNotFoundError, ProfileNotFoundError
from lib.models import AnalysisRecord, AnalysisSummary
from lib.storage import AnalysisRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HistoryService:
    def __init__(
        self,
        repository: AnalysisRepository,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.repository = repository
        self.clock = clock

    async def list_summaries(self, user_id: str) -> List[AnalysisSummary]:
        """Summaries for the user's analyses, most recent first."""
        summaries: List[AnalysisSummary] = []
        for analysis_id in await self.repository.get_history_ids(user_id):
            record = await self.repository.get_record(analysis_id)
            if record is None:
                logger.warning("History for %s references missing analysis %s", user_id, analysis_id)
                continue
            summaries.append(record.summary())
        summaries.reverse()
        return summaries

    async def get_detail(self, user_id: str, analysis_id: str) -> AnalysisRecord:
        record = await self.repository.get_record(analysis_id)
        if record is None:
            raise AnalysisNotFoundError(f"Analysis '{analysis_id}' not found")
        if record.user_id != user_id:
            logger.warning("User %s denied access to analysis %s", user_id, analysis_id)
            raise AnalysisForbiddenError("Access denied to this analysis")
        return record

    async def ensure_profile(self, user_id: str) -> Dict[str, Any]:
        return await self.repository.ensure_profile(user_id, self.clock().isoformat())

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        profile = await self.repository.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for '{user_id}' not found")
        return profile

    async def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Merge name and preferences into the stored profile.

        Absent values keep what is stored; every other field is carried over.
        """
        current = await self.get_profile(user_id)
        updated = {
            **current,
            "name": name or current.get("name"),
            "preferences": preferences or current.get("preferences") or {},
            "updatedAt": self.clock().isoformat(),
        }
        await self.repository.save_profile(user_id, updated)
        return updated
