from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Any, Literal
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from nodepanel.core.errors import JenkinsRequestError, to_jenkins_action_error
from nodepanel.models.environment import EnvironmentRef
from nodepanel.models.node import NodeSnapshot, NodeSummary

NODE_LIST_TREE = (
    "computer[displayName,name,url,offline,temporarilyOffline,offlineCauseReason,"
    "offlineCause[description,shortDescription],numExecutors,busyExecutors]"
)

_EXECUTOR_TREE = (
    "number,idle,progress,"
    "currentExecutable[number,url,displayName,fullDisplayName,result,timestamp,duration,estimatedDuration,building],"
    "currentWorkUnit[number,url,displayName,fullDisplayName,result,timestamp,duration,estimatedDuration,building]"
)

BASIC_NODE_TREE = (
    "displayName,name,description,url,offline,temporarilyOffline,idle,offlineCauseReason,"
    "offlineCause[description,shortDescription,timestamp],numExecutors,busyExecutors,"
    "launchSupported,manualLaunchAllowed,jnlpAgent,assignedLabels[name],"
    f"executors[{_EXECUTOR_TREE}]"
)

ADVANCED_NODE_TREE = f"{BASIC_NODE_TREE},oneOffExecutors[{_EXECUTOR_TREE}],monitorData[*],loadStatistics[*[*]]"

NODE_TREES = {"basic": BASIC_NODE_TREE, "advanced": ADVANCED_NODE_TREE}

BUILT_IN_NODE_NAMES = {"", "master", "built-in"}

NodeOfflineToggleStatus = Literal["toggled", "no_change", "not_temporarily_offline"]
NodeLaunchStatus = Literal["launched", "no_change", "not_launchable", "temporarily_offline"]


@dataclass(frozen=True)
class NodeOfflineToggleResult:
    status: NodeOfflineToggleStatus
    details: NodeSnapshot


@dataclass(frozen=True)
class NodeLaunchResult:
    status: NodeLaunchStatus
    details: NodeSnapshot


def resolve_node_url(base_url: str, node: NodeSummary) -> str | None:
    if node.url:
        return node.url
    base = base_url.rstrip("/")
    if node.name is not None and node.name.strip() in BUILT_IN_NODE_NAMES:
        return f"{base}/computer/(built-in)/"
    name = (node.name or node.display_name or "").strip()
    if not name:
        return None
    return f"{base}/computer/{quote(name, safe='')}/"


def node_api_url(node_url: str) -> str:
    return f"{node_url.rstrip('/')}/api/json"


class JenkinsDataService:
    """Node data and node actions against Jenkins, one attempt per request."""

    def __init__(
        self,
        timeout: int,
        logger: logging.Logger,
        cache_ttl_sec: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._logger = logger
        self._cache_ttl_sec = max(0, cache_ttl_sec)
        self._cache: dict[tuple[str, str, str], tuple[float, Any]] = {}
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def clear_cache_for_environment(self, environment_id: str) -> None:
        for key in [key for key in self._cache if key[0] == environment_id]:
            self._cache.pop(key, None)

    async def get_nodes(self, environment: EnvironmentRef) -> list[NodeSummary]:
        cache_key = (environment.environment_id, "nodes", environment.url)
        cached = self._cache_get(cache_key)
        if cached is not None:
            return cached
        try:
            data = await self._get_json(f"{environment.url.rstrip('/')}/computer/api/json", {"tree": NODE_LIST_TREE})
            computers = data.get("computer") if isinstance(data, dict) else None
            nodes = [NodeSummary.model_validate(item) for item in computers or [] if isinstance(item, dict)]
        except (JenkinsRequestError, ValidationError) as exc:
            raise to_jenkins_action_error(exc) from exc
        resolved = [node.model_copy(update={"node_url": resolve_node_url(environment.url, node)}) for node in nodes]
        self._cache_set(cache_key, resolved)
        return resolved

    async def get_node_details(
        self,
        environment: EnvironmentRef,
        node_url: str,
        *,
        mode: Literal["refresh"] | None = None,
        detail_level: str = "basic",
    ) -> NodeSnapshot:
        tree = NODE_TREES.get(detail_level, BASIC_NODE_TREE)
        cache_key = (environment.environment_id, f"node-details-{detail_level}", node_url)
        if mode != "refresh":
            cached = self._cache_get(cache_key)
            if cached is not None:
                return cached
        try:
            data = await self._get_json(node_api_url(node_url), {"tree": tree, "depth": "1"})
            details = NodeSnapshot.model_validate(data)
        except (JenkinsRequestError, ValidationError) as exc:
            raise to_jenkins_action_error(exc) from exc
        self._cache_set(cache_key, details)
        return details

    async def set_node_temporarily_offline(
        self,
        environment: EnvironmentRef,
        node_url: str,
        target_offline: bool,
        reason: str | None = None,
    ) -> NodeOfflineToggleResult:
        details = await self.get_node_details(environment, node_url, mode="refresh")
        is_offline = details.offline is True
        is_temporarily_offline = details.temporarily_offline is True

        if target_offline:
            if is_offline or is_temporarily_offline:
                return NodeOfflineToggleResult("no_change", details)
        elif not is_temporarily_offline:
            return NodeOfflineToggleResult("not_temporarily_offline" if is_offline else "no_change", details)

        self.clear_cache_for_environment(environment.environment_id)
        params = {"offlineMessage": reason} if target_offline and reason else None
        await self._post(f"{node_url.rstrip('/')}/toggleOffline", params)
        refreshed = await self.get_node_details(environment, node_url, mode="refresh")
        return NodeOfflineToggleResult("toggled", refreshed)

    async def launch_node_agent(self, environment: EnvironmentRef, node_url: str) -> NodeLaunchResult:
        details = await self.get_node_details(environment, node_url, mode="refresh")
        if details.offline is not True:
            return NodeLaunchResult("no_change", details)
        if details.temporarily_offline is True:
            return NodeLaunchResult("temporarily_offline", details)
        if details.launch_supported is not True:
            return NodeLaunchResult("not_launchable", details)

        self.clear_cache_for_environment(environment.environment_id)
        await self._post(f"{node_url.rstrip('/')}/launchSlaveAgent")
        refreshed = await self.get_node_details(environment, node_url, mode="refresh")
        return NodeLaunchResult("launched", refreshed)

    def _cache_get(self, key: tuple[str, str, str]) -> Any:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._cache.pop(key, None)
            return None
        return value

    def _cache_set(self, key: tuple[str, str, str], value: Any) -> None:
        now = time.monotonic()
        for expired in [item for item, (expires_at, _) in self._cache.items() if now >= expires_at]:
            self._cache.pop(expired, None)
        if self._cache_ttl_sec:
            self._cache[key] = (now + self._cache_ttl_sec, value)

    def cached_keys(self) -> list[tuple[str, str, str]]:
        return list(self._cache)

    def _format_error(self, exc: Exception) -> str:
        if isinstance(exc, httpx.HTTPStatusError):
            response = exc.response
            request = exc.request
            detail = (response.text or "").strip().replace("\n", " ")
            if len(detail) > 220:
                detail = f"{detail[:220]}..."
            return f"status={response.status_code} method={request.method} url={request.url} detail={detail}"
        if isinstance(exc, httpx.RequestError):
            request = exc.request
            return f"{exc.__class__.__name__} method={request.method} url={request.url} detail={exc}"
        return str(exc)

    async def _request(self, method: str, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            response = await self._client.request(method, url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            message = self._format_error(exc)
            self._logger.warning("jenkins_request_failed method=%s url=%s error=%s", method, url, message)
            raise JenkinsRequestError(message, status_code) from exc
        return response

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        response = await self._request("GET", url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise JenkinsRequestError(f"invalid_json url={url}", response.status_code) from exc

    async def _post(self, url: str, params: dict[str, str] | None = None) -> None:
        try:
            await self._request("POST", url, params)
        except JenkinsRequestError as exc:
            raise to_jenkins_action_error(exc) from exc
