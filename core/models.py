"""
Shared data models: Target -> open ports -> BannerRecord -> HostResult -> ScanReport.
HostResult is the unit handed to output collaborators.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Target(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(ge=0, le=65535)


class BannerRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int
    banner: str


class HostResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    host: str
    ports: List[int] = Field(default_factory=list)
    banners: List[BannerRecord] = Field(default_factory=list, alias="banner")

    def banner_for(self, port: int) -> str | None:
        for rec in self.banners:
            if rec.port == port:
                return rec.banner
        return None

    def to_doc(self) -> Dict:
        return self.model_dump(by_alias=True)


class ScanReport(BaseModel):
    hosts: List[HostResult] = Field(default_factory=list)
    started_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    duration_s: float = 0.0
    hosts_scanned: int = 0
    ports_scanned: int = 0

    def payload(self) -> List[Dict]:
        """External structure: [{"host", "ports", "banner": [{"port", "banner"}]}]."""
        return [h.to_doc() for h in self.hosts]

    def host(self, host: str) -> HostResult | None:
        for h in self.hosts:
            if h.host == host:
                return h
        return None
