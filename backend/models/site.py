"""Site and version models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.config import settings

DomainStatus = Literal["none", "pending", "active"]


class Site(BaseModel):
    """Core site model. Represents a row in the sites table."""

    id: UUID
    user_id: UUID
    title: str = "Untitled Project"
    subdomain: str
    custom_domain: str | None = None
    custom_domain_status: DomainStatus = "none"
    is_published: bool = False
    current_version_id: UUID | None = None
    version_seq: int = 0
    created_at: datetime
    updated_at: datetime
    # Joined from site_versions when listing; not a column of sites
    html_content: str | None = None


class SiteVersion(BaseModel):
    """An immutable snapshot. Represents a row in the site_versions table."""

    id: UUID
    site_id: UUID
    version_number: int
    html_content: str
    created_at: datetime


class SaveResult(BaseModel):
    """What a successful save produced."""

    site: Site
    version: SiteVersion | None = None  # None for title-only updates


class SiteResponse(BaseModel):
    """What the API returns for a site."""

    id: UUID
    title: str
    subdomain: str
    custom_domain: str | None
    custom_domain_status: str
    is_published: bool
    current_version_id: UUID | None
    updated_at: datetime
    html_content: str | None = None  # Included in dashboard listings for thumbnails
    published_url: str | None = None

    @classmethod
    def from_model(cls, site: Site) -> SiteResponse:
        """Convert internal Site model to public API response."""
        return cls(
            id=site.id,
            title=site.title,
            subdomain=site.subdomain,
            custom_domain=site.custom_domain,
            custom_domain_status=site.custom_domain_status,
            is_published=site.is_published,
            current_version_id=site.current_version_id,
            updated_at=site.updated_at,
            html_content=site.html_content,
            published_url=f"{settings.PUBLIC_URL}/s/{site.subdomain}" if site.is_published else None,
        )


class VersionSummary(BaseModel):
    """Version listing entry. No markup."""

    id: UUID
    version_number: int
    created_at: datetime

    @classmethod
    def from_model(cls, version: SiteVersion) -> VersionSummary:
        return cls(id=version.id, version_number=version.version_number, created_at=version.created_at)


class VersionResponse(BaseModel):
    """A single version including its markup."""

    id: UUID
    site_id: UUID
    version_number: int
    html_content: str
    created_at: datetime

    @classmethod
    def from_model(cls, version: SiteVersion) -> VersionResponse:
        return cls(
            id=version.id,
            site_id=version.site_id,
            version_number=version.version_number,
            html_content=version.html_content,
            created_at=version.created_at,
        )


class PublishStatusRequest(BaseModel):
    """What the client sends to toggle publishing."""

    model_config = {"extra": "forbid"}

    is_published: bool


class ConnectDomainRequest(BaseModel):
    """What the client sends to bind a custom domain to a site."""

    model_config = {"extra": "forbid"}

    site_id: UUID
    domain: str = Field(
        min_length=3,
        max_length=253,
        pattern=r"^([A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}$",
    )
    method: Literal["auto", "manual"] = "manual"


class ConnectDomainResponse(BaseModel):
    domain: str
    status: DomainStatus
