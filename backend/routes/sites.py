"""Dashboard routes: list, get, delete, publish, versions, custom domains."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.models.site import (
    ConnectDomainRequest,
    ConnectDomainResponse,
    PublishStatusRequest,
    SiteResponse,
    VersionResponse,
    VersionSummary,
)
from backend.models.user import User
from backend.repos.site_repo import SiteRepo

router = APIRouter(prefix="/api", tags=["sites"])
site_repo = SiteRepo()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found.")


@router.get("/sites", status_code=200)
async def list_sites(user: User = Depends(get_current_user)) -> list[SiteResponse]:
    """List the user's sites, most recently updated first, with current markup for thumbnails."""
    sites = await site_repo.list_for_user(user.id)
    return [SiteResponse.from_model(s) for s in sites]


@router.get("/sites/{site_id}", status_code=200)
async def get_site(site_id: UUID, user: User = Depends(get_current_user)) -> SiteResponse:
    site = await site_repo.get(user.id, site_id)
    if not site:
        raise _not_found()
    return SiteResponse.from_model(site)


@router.delete("/sites/{site_id}", status_code=204)
async def delete_site(site_id: UUID, user: User = Depends(get_current_user)) -> None:
    """Delete a site together with its versions and conversation."""
    deleted = await site_repo.delete(user.id, site_id)
    if not deleted:
        raise _not_found()


@router.put("/sites/{site_id}/status", status_code=200)
async def set_publish_status(
    site_id: UUID,
    req: PublishStatusRequest,
    user: User = Depends(get_current_user),
) -> SiteResponse:
    """Publish or unpublish. Setting the current value again succeeds without change."""
    site = await site_repo.set_published(user.id, site_id, req.is_published)
    if not site:
        raise _not_found()
    return SiteResponse.from_model(site)


@router.get("/sites/{site_id}/versions", status_code=200)
async def list_versions(site_id: UUID, user: User = Depends(get_current_user)) -> list[VersionSummary]:
    site = await site_repo.get(user.id, site_id)
    if not site:
        raise _not_found()
    versions = await site_repo.list_versions(user.id, site_id)
    return [VersionSummary.from_model(v) for v in versions]


@router.get("/sites/{site_id}/versions/{version_number}", status_code=200)
async def get_version(
    site_id: UUID,
    version_number: int,
    user: User = Depends(get_current_user),
) -> VersionResponse:
    version = await site_repo.get_version(user.id, site_id, version_number)
    if not version:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found.")
    return VersionResponse.from_model(version)


@router.post("/domains/connect", status_code=200)
async def connect_domain(
    req: ConnectDomainRequest,
    user: User = Depends(get_current_user),
) -> ConnectDomainResponse:
    """
    Record a custom domain for a site as pending.

    DNS verification is not performed; the binding stays "pending" until an
    operator activates it.
    """
    site = await site_repo.connect_domain(user.id, req.site_id, req.domain)
    if not site:
        raise _not_found()
    return ConnectDomainResponse(domain=site.custom_domain or req.domain.lower(), status=site.custom_domain_status)
