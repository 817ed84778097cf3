"""
Elasticsearch sink for host results: one document per HostResult,
written in batches, read back per host for the report command.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Dict, Iterable, List

from elasticsearch import Elasticsearch, helpers

from core.config import settings

log = logging.getLogger(__name__)


def _client() -> Elasticsearch:
    if not settings.elasticsearch_url:
        raise ValueError("RANGESCAN_ELASTICSEARCH_URL is required for ElasticsearchAdapter")
    auth: Dict = {}
    if settings.elasticsearch_api_key:
        auth["api_key"] = settings.elasticsearch_api_key
    elif settings.elasticsearch_user:
        auth["basic_auth"] = (settings.elasticsearch_user, settings.elasticsearch_pass or "")
    return Elasticsearch(
        [settings.elasticsearch_url],
        verify_certs=settings.elasticsearch_verify_certs,
        ca_certs=settings.elasticsearch_ca_cert,
        **auth,
    )


class ElasticsearchAdapter:
    def __init__(self):
        self.client = _client()
        self.index = settings.elasticsearch_index
        self.batch_size = settings.bulk_batch_size

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception:  # noqa: BLE001
            return False

    def _write_batch(self, actions: List[Dict], max_attempts: int):
        delay = 1.0
        for attempt in range(1, max_attempts + 1):
            try:
                helpers.bulk(self.client, actions, stats_only=True, raise_on_error=True, max_retries=0, request_timeout=30)
                return
            except Exception as exc:  # noqa: BLE001
                if attempt == max_attempts:
                    raise
                log.warning("bulk write to %s failed (attempt %d/%d): %s", self.index, attempt, max_attempts, exc)
                time.sleep(delay + random.random())
                delay *= 2

    def bulk_index(self, docs: Iterable[Dict], index: str | None = None, max_attempts: int = 3):
        target = index or self.index
        actions = [{"_index": target, "_source": doc} for doc in docs]
        for start in range(0, len(actions), self.batch_size):
            self._write_batch(actions[start : start + self.batch_size], max_attempts)

    def search_by_host(self, host: str, size: int = 50) -> List[Dict]:
        try:
            res = self.client.search(
                index=self.index,
                size=size,
                query={"term": {"host.keyword": host}},
                sort=[{"timestamp": {"order": "desc"}}],
            )
        except Exception:  # noqa: BLE001
            return []
        return [h.get("_source", {}) for h in res.get("hits", {}).get("hits", [])]
