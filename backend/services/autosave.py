"""
Autosave state machine for one editing session.

    idle ──save──→ saving ──→ saved
    saved ─save──→ saving ──→ error ──save──→ saving ──→ saved

"idle" only exists before a new site's first save. A failed save leaves the
state in "error" until the next save succeeds; the in-memory document is never
touched here.
"""

from __future__ import annotations

import logging
from uuid import UUID

from backend.db import persistence_errors
from backend.models.session import SaveState
from backend.models.site import SaveResult, Site
from backend.repos.site_repo import DEFAULT_TITLE, SiteRepo
from engine.kernel.errors import PersistenceError
from engine.kernel.types import Document

logger = logging.getLogger(__name__)


class Autosaver:
    """Persists documents and titles for one site on behalf of one user."""

    def __init__(self, user_id: UUID, site_repo: SiteRepo, site: Site | None = None) -> None:
        self.user_id = user_id
        self.site_repo = site_repo
        self.site_id: UUID | None = site.id if site else None
        self.subdomain: str | None = site.subdomain if site else None
        self.title: str = site.title if site else DEFAULT_TITLE
        self.state: SaveState = "saved" if site else "idle"
        self.last_error: str | None = None
        self.last_version_number: int | None = site.version_seq if site else None

    async def save(self, document: Document, title: str | None = None) -> SaveResult:
        """
        Persist document as a new version.

        Without a site yet, creates one (fresh subdomain, version 1). Otherwise
        appends the next version and repoints the site at it.

        Args:
            document: Document to snapshot
            title: New title, if it changed alongside the document

        Returns:
            SaveResult with the site and the version just written

        Raises:
            PersistenceError: If the write fails (state becomes "error")
        """
        self.state = "saving"
        try:
            async with persistence_errors("save"):
                if self.site_id is None:
                    result = await self.site_repo.create_with_version(
                        self.user_id, document.html, title=title or self.title
                    )
                else:
                    result = await self.site_repo.append_version(self.user_id, self.site_id, document.html)
                    if result is None:
                        raise PersistenceError(f"site {self.site_id} no longer exists")
                    if title and title != result.site.title:
                        site = await self.site_repo.update_title(self.user_id, self.site_id, title)
                        if site is not None:
                            result = SaveResult(site=site, version=result.version)
        except PersistenceError as e:
            self._fail(e)
            raise

        self._succeed(result)
        if result.version is not None:
            self.last_version_number = result.version.version_number
            logger.info("autosave: site %s now at version %d", self.site_id, result.version.version_number)
        return result

    async def commit_title(self, title: str, document: Document) -> SaveResult:
        """
        Persist a title edit.

        On an existing site only the title changes and no version is written.
        Before the first save there is no site to rename, so the document is
        saved with the title instead.

        Raises:
            PersistenceError: If the write fails (state becomes "error")
        """
        if self.site_id is None:
            return await self.save(document, title=title)

        self.state = "saving"
        try:
            async with persistence_errors("title update"):
                site = await self.site_repo.update_title(self.user_id, self.site_id, title)
                if site is None:
                    raise PersistenceError(f"site {self.site_id} no longer exists")
        except PersistenceError as e:
            self._fail(e)
            raise

        result = SaveResult(site=site, version=None)
        self._succeed(result)
        return result

    def _succeed(self, result: SaveResult) -> None:
        self.site_id = result.site.id
        self.subdomain = result.site.subdomain
        self.title = result.site.title
        self.state = "saved"
        self.last_error = None

    def _fail(self, error: PersistenceError) -> None:
        self.state = "error"
        self.last_error = str(error)
        logger.error("autosave: %s", error)
