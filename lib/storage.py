"""
Storage Module - Arsenal Module
Filesystem-backed key-value store plus the analysis key layout on top of it.
"""

import asyncio
import base64
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from lib.models import AnalysisRecord

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "user_profile:"
ANALYSIS_PREFIX = "analysis:"
USER_ANALYSES_PREFIX = "user_analyses:"
COMMUNITY_POST_PREFIX = "community_post:"

DEFAULT_SUBSCRIPTION = "free"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def get_by_prefix(self, prefix: str) -> List[Any]: ...


class JsonFileStore:
    """One JSON file per key; file names are urlsafe-base64 encoded keys."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)

    @staticmethod
    def _encode_key(key: str) -> str:
        if not isinstance(key, str) or not key:
            raise ValueError("Invalid key")
        return base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii")

    @staticmethod
    def _decode_key(file_stem: str) -> Optional[str]:
        try:
            return base64.urlsafe_b64decode(file_stem.encode("ascii")).decode("utf-8")
        except (ValueError, UnicodeError):
            return None

    def _path_for(self, key: str) -> Path:
        return self.root / f"{self._encode_key(key)}.json"

    async def ensure_root(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self.root.mkdir(parents=True, exist_ok=True))

    async def get(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        loop = asyncio.get_running_loop()

        def _read() -> Optional[Any]:
            if not path.exists():
                return None
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

        return await loop.run_in_executor(None, _read)

    async def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        encoded_payload = json.dumps(value, indent=2).encode("utf-8")
        await self.ensure_root()
        loop = asyncio.get_running_loop()

        def _write() -> None:
            fd, tmp_name = tempfile.mkstemp(prefix=".kv.", suffix=".tmp", dir=self.root)
            try:
                with os.fdopen(fd, "wb") as tmp_file:
                    tmp_file.write(encoded_payload)
                    tmp_file.flush()
                    os.fsync(tmp_file.fileno())
                os.replace(tmp_name, path)
            finally:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)

        await loop.run_in_executor(None, _write)

    async def get_by_prefix(self, prefix: str) -> List[Any]:
        loop = asyncio.get_running_loop()

        def _scan() -> List[Any]:
            if not self.root.exists():
                return []

            values: List[Any] = []
            for entry in sorted(self.root.iterdir(), key=lambda p: p.name):
                if not entry.is_file() or entry.suffix != ".json":
                    continue
                key = self._decode_key(entry.stem)
                if key is None or not key.startswith(prefix):
                    continue
                try:
                    with open(entry, "r", encoding="utf-8") as f:
                        values.append(json.load(f))
                except (OSError, json.JSONDecodeError) as exc:
                    logger.error("Error reading store entry %s: %s", entry, exc)
            return values

        return await loop.run_in_executor(None, _scan)


class AnalysisRepository:
    """Knows the key layout for records, history indexes and profiles."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def save_record(self, record: AnalysisRecord) -> None:
        await self.store.set(f"{ANALYSIS_PREFIX}{record.id}", record.to_payload())

    async def get_record(self, analysis_id: str) -> Optional[AnalysisRecord]:
        data = await self.store.get(f"{ANALYSIS_PREFIX}{analysis_id}")
        if data is None:
            return None
        return AnalysisRecord.model_validate(data)

    async def get_history_ids(self, user_id: str) -> List[str]:
        data = await self.store.get(f"{USER_ANALYSES_PREFIX}{user_id}")
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str)]

    async def append_to_history(self, user_id: str, analysis_id: str) -> None:
        # Read-modify-write; concurrent appends for one user can lose an id.
        ids = await self.get_history_ids(user_id)
        ids.append(analysis_id)
        await self.store.set(f"{USER_ANALYSES_PREFIX}{user_id}", ids)

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        data = await self.store.get(f"{PROFILE_PREFIX}{user_id}")
        return data if isinstance(data, dict) else None

    async def save_profile(self, user_id: str, profile: Dict[str, Any]) -> None:
        await self.store.set(f"{PROFILE_PREFIX}{user_id}", profile)

    async def ensure_profile(self, user_id: str, created_at: str) -> Dict[str, Any]:
        """Return the user's profile, creating an empty one the first time they are seen."""
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile

        profile = {
            "id": user_id,
            "createdAt": created_at,
            "analysisCount": 0,
            "subscription": DEFAULT_SUBSCRIPTION,
        }
        await self.save_profile(user_id, profile)
        logger.info("Created profile for user %s", user_id)
        return profile

    async def record_usage(self, user_id: str, timestamp: str) -> bool:
        """Bump analysisCount and lastAnalysis. Returns False when no profile exists."""
        profile = await self.get_profile(user_id)
        if profile is None:
            return False

        count = profile.get("analysisCount")
        profile["analysisCount"] = (count if isinstance(count, int) else 0) + 1
        profile["lastAnalysis"] = timestamp
        await self.save_profile(user_id, profile)
        return True
