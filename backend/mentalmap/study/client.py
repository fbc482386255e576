"""Study data client fetching export GeoJSON and question labels from the survey service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from mentalmap.errors import StudyLoadError

logger = logging.getLogger(__name__)


def question_labels_from_config(study: dict[str, Any]) -> dict[str, str]:
    """``config.questions[].{id, text}`` → {question_id: text}."""
    config = study.get("config") or {}
    questions = config.get("questions") if isinstance(config, dict) else None
    labels: dict[str, str] = {}
    for q in questions or []:
        if isinstance(q, dict) and q.get("id") is not None:
            labels[str(q["id"])] = str(q.get("text") or q["id"])
    return labels


class StudyClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings, **overrides) -> StudyClient:
        kwargs = {"timeout": settings.study_api_timeout_s}
        kwargs.update(overrides)
        return cls(settings.study_api_url, **kwargs)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Study service request %s failed: %s", path, e)
            raise StudyLoadError(f"failed to load {path}: {e}") from e

    async def fetch_geojson(self, study_id: str) -> dict[str, Any]:
        data = await self._get_json(f"/api/export/{study_id}/geojson")
        if not isinstance(data, dict) or not isinstance(data.get("features"), list):
            raise StudyLoadError(f"study {study_id}: export is not a FeatureCollection")
        return data

    async def fetch_participant_geojson(self, study_id: str, participant_code: str) -> dict[str, Any]:
        data = await self._get_json(f"/api/export/{study_id}/participant/{participant_code}/geojson")
        if not isinstance(data, dict) or not isinstance(data.get("features"), list):
            raise StudyLoadError(f"study {study_id}: participant export is not a FeatureCollection")
        return data

    async def fetch_question_labels(self, study_id: str) -> dict[str, str]:
        data = await self._get_json(f"/api/studies/{study_id}")
        if not isinstance(data, dict):
            raise StudyLoadError(f"study {study_id}: unexpected study payload")
        return question_labels_from_config(data)

    async def load_study(self, study_id: str) -> tuple[dict[str, Any], dict[str, str]]:
        """(FeatureCollection, question labels), fetched concurrently."""
        geojson, labels = await asyncio.gather(
            self.fetch_geojson(study_id),
            self.fetch_question_labels(study_id),
        )
        logger.info("Loaded study %s: %d feature(s), %d question(s)", study_id, len(geojson["features"]), len(labels))
        return geojson, labels

    async def aclose(self) -> None:
        await self._client.aclose()
