"""Mission repository interface and adapters.

The repository owns :class:`~missionloc.models.mission.Mission` aggregates
between pipeline calls. Concurrency on a single key is the repository's
concern; the pipeline does a plain read-modify-write (last write wins).
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import quote

import aiohttp

from missionloc.exceptions import RepositoryError
from missionloc.models.mission import Mission

_logger = logging.getLogger(__name__)


class MissionRepository(Protocol):
    """Structural repository interface used by the pipeline.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete.
    """

    async def get(self, key: str) -> Mission | None:
        ...

    async def add(self, mission: Mission) -> None:
        ...


class InMemoryMissionRepository:
    """Dict-backed repository.

    Stores and hands out deep copies so callers never share a live
    aggregate with the store.
    """

    def __init__(self, missions: list[Mission] | None = None) -> None:
        self._missions: dict[str, Mission] = {}
        for mission in missions or []:
            self._missions[mission.key] = mission.model_copy(deep=True)

    async def get(self, key: str) -> Mission | None:
        mission = self._missions.get(key)
        if mission is None:
            return None
        return mission.model_copy(deep=True)

    async def add(self, mission: Mission) -> None:
        self._missions[mission.key] = mission.model_copy(deep=True)

    def __contains__(self, key: object) -> bool:
        return key in self._missions

    def __len__(self) -> int:
        return len(self._missions)


class HttpMissionRepository:
    """Repository backed by an Infinispan-style REST cache.

    Missions are stored as JSON documents under
    ``{base_url}/rest/v2/caches/{cache}/{key}``.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        base_url: str,
        cache: str,
        auth: aiohttp.BasicAuth | None = None,
    ) -> None:
        self._http = http_session
        self._base_url = base_url.rstrip("/")
        self._cache = cache
        self._auth = auth

    def _url(self, key: str) -> str:
        return f"{self._base_url}/rest/v2/caches/{quote(self._cache, safe='')}/{quote(key, safe='')}"

    async def get(self, key: str) -> Mission | None:
        url = self._url(key)
        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url, headers={"accept": "application/json"}, auth=self._auth) as resp:
                text = await resp.text()
                if resp.status == 404:
                    return None
                if resp.status != 200:
                    raise RepositoryError(
                        f"HTTP {resp.status} reading mission {key}: {text[:200]}",
                        status_code=resp.status,
                        key=key,
                    )
        except aiohttp.ClientError as exc:
            raise RepositoryError(f"Reading mission {key} failed: {exc}", key=key) from exc

        try:
            return Mission.from_json(text)
        except ValueError as exc:
            raise RepositoryError(f"Invalid mission document for {key}: {text[:200]}", key=key) from exc

    async def add(self, mission: Mission) -> None:
        key = mission.key
        url = self._url(key)
        _logger.debug("PUT %s", url)
        try:
            async with self._http.put(
                url,
                data=mission.to_json(),
                headers={"content-type": "application/json"},
                auth=self._auth,
            ) as resp:
                if resp.status not in (200, 201, 204):
                    text = await resp.text()
                    raise RepositoryError(
                        f"HTTP {resp.status} writing mission {key}: {text[:200]}",
                        status_code=resp.status,
                        key=key,
                    )
        except aiohttp.ClientError as exc:
            raise RepositoryError(f"Writing mission {key} failed: {exc}", key=key) from exc
