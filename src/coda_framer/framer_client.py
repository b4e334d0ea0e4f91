from __future__ import annotations
import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests


logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.framer.com/server/v1"


@dataclass
class FramerConfig:
    project_url: str
    api_key: str
    api_base: str = DEFAULT_API_BASE

    @property
    def base_url(self) -> str:
        return self.api_base.rstrip("/")


def build_session(cfg: FramerConfig) -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "Authorization": f"Bearer {cfg.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "coda-framer/1.0",
        }
    )
    s.params = {"projectUrl": cfg.project_url}
    return s


def _retry_after(header: Optional[str], backoff: float) -> float:
    # Retry-After may also be an HTTP-date; fall back to our own back-off then
    try:
        seconds = float(header)
    except (TypeError, ValueError):
        return backoff
    return seconds if math.isfinite(seconds) and seconds >= 0 else backoff


class FramerClient:
    """Managed-collection operations against the Framer Server API bridge."""

    def __init__(self, cfg: FramerConfig, session: Optional[requests.Session] = None, max_retries: int = 5):
        self.cfg = cfg
        self.session = session or build_session(cfg)
        self.max_retries = max_retries

    def _collection_url(self, collection_id: str, suffix: str = "") -> str:
        return f"{self.cfg.base_url}/collections/{quote(collection_id, safe='')}{suffix}"

    def _request(self, method: str, url: str, payload: Optional[Dict] = None) -> Dict:
        backoff = 1.0
        attempt = 0
        while True:
            data = json.dumps(payload) if payload is not None else None
            resp = self.session.request(method, url, data=data)
            if resp.status_code == 429 and attempt < self.max_retries:
                retry_after = _retry_after(resp.headers.get("Retry-After"), backoff)
                logger.debug(f"{method} {url} rate limited; sleeping {retry_after}s")
                time.sleep(retry_after)
                backoff = min(backoff * 2, 10.0)
                attempt += 1
                continue
            if not resp.ok:
                try:
                    detail = resp.json()
                except ValueError:
                    detail = resp.text
                raise requests.HTTPError(f"{resp.status_code}: {detail}", response=resp)
            if not resp.content:
                return {}
            return resp.json() or {}

    def list_managed_collections(self) -> List[Dict]:
        data = self._request("GET", f"{self.cfg.base_url}/collections")
        return data.get("collections") or []

    def create_managed_collection(self, name: str) -> Dict:
        data = self._request("POST", f"{self.cfg.base_url}/collections", {"name": name})
        return data.get("collection") or {}

    def get_fields(self, collection_id: str) -> List[Dict]:
        data = self._request("GET", self._collection_url(collection_id, "/fields"))
        return data.get("fields") or []

    def set_fields(self, collection_id: str, fields: List[Dict]) -> None:
        self._request("PUT", self._collection_url(collection_id, "/fields"), {"fields": fields})

    def get_item_ids(self, collection_id: str) -> List[str]:
        data = self._request("GET", self._collection_url(collection_id, "/items/ids"))
        return [str(i) for i in (data.get("itemIds") or [])]

    def add_items(self, collection_id: str, items: List[Dict]) -> None:
        self._request("POST", self._collection_url(collection_id, "/items"), {"items": items})

    def remove_items(self, collection_id: str, item_ids: List[str]) -> None:
        self._request("POST", self._collection_url(collection_id, "/items/remove"), {"itemIds": item_ids})

    def get_changed_paths(self) -> Dict[str, Any]:
        return self._request("GET", f"{self.cfg.base_url}/changes")

    def publish(self) -> Dict[str, Any]:
        return self._request("POST", f"{self.cfg.base_url}/publish", {})

    def deploy(self, deployment_id: str) -> Dict[str, Any]:
        return self._request("POST", f"{self.cfg.base_url}/deployments/{quote(deployment_id, safe='')}/deploy", {})
