"""Public routes: serve published sites by subdomain."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import HTMLResponse

from backend.repos.site_repo import SiteRepo

router = APIRouter(tags=["published"])
site_repo = SiteRepo()


@router.get("/s/{subdomain}", include_in_schema=False)
async def serve_published(subdomain: str) -> HTMLResponse:
    """Serve the current version of a published site. Unpublished sites read as missing."""
    site = await site_repo.get_published(subdomain.lower())
    if not site or not site.html_content:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found.")
    return HTMLResponse(
        content=site.html_content,
        headers={"Cache-Control": "public, max-age=60"},
    )
