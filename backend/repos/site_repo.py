"""Repository for sites and their version history."""

from __future__ import annotations

import logging
import secrets
from uuid import UUID, uuid4

import asyncpg

from backend.db import system_conn, user_conn
from backend.models.site import SaveResult, Site, SiteVersion

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Project"

# Subdomains are random; a collision just means drawing again
_SUBDOMAIN_ATTEMPTS = 3

_SITE_WITH_HTML = """
    SELECT s.*, v.html_content
    FROM sites s
    LEFT JOIN site_versions v ON v.id = s.current_version_id
"""


def _row_to_site(row: asyncpg.Record) -> Site:
    """Convert a database row to a Site model."""
    return Site(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        subdomain=row["subdomain"],
        custom_domain=row["custom_domain"],
        custom_domain_status=row["custom_domain_status"],
        is_published=row["is_published"],
        current_version_id=row["current_version_id"],
        version_seq=row["version_seq"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        html_content=row.get("html_content"),
    )


def _row_to_version(row: asyncpg.Record) -> SiteVersion:
    """Convert a database row to a SiteVersion model."""
    return SiteVersion(
        id=row["id"],
        site_id=row["site_id"],
        version_number=row["version_number"],
        html_content=row["html_content"],
        created_at=row["created_at"],
    )


def generate_subdomain(user_id: UUID) -> str:
    """site-<first uuid group>-<6 hex chars>, e.g. site-3f2a9c1d-a41b0e."""
    return f"site-{str(user_id).split('-')[0]}-{secrets.token_hex(3)}"


class SiteRepo:
    """All site and version database operations."""

    async def create_with_version(self, user_id: UUID, html_content: str, title: str | None = None) -> SaveResult:
        """
        Create a new site whose first version is html_content.

        Site, version 1, and the current-version pointer are written in one
        transaction.

        Args:
            user_id: Owner UUID
            html_content: Document markup for version 1
            title: Site title (defaults to "Untitled Project")

        Returns:
            SaveResult with the new site and its first version
        """
        for attempt in range(_SUBDOMAIN_ATTEMPTS):
            subdomain = generate_subdomain(user_id)
            try:
                async with user_conn(user_id) as conn:
                    site_id = uuid4()
                    await conn.execute(
                        """
                        INSERT INTO sites (id, user_id, title, subdomain, version_seq)
                        VALUES ($1, $2, $3, $4, 1)
                        """,
                        site_id,
                        user_id,
                        title or DEFAULT_TITLE,
                        subdomain,
                    )
                    version_row = await conn.fetchrow(
                        """
                        INSERT INTO site_versions (id, site_id, version_number, html_content)
                        VALUES ($1, $2, 1, $3)
                        RETURNING *
                        """,
                        uuid4(),
                        site_id,
                        html_content,
                    )
                    site_row = await conn.fetchrow(
                        """
                        UPDATE sites
                        SET current_version_id = $2, updated_at = now()
                        WHERE id = $1
                        RETURNING *, $3::text AS html_content
                        """,
                        site_id,
                        version_row["id"],
                        html_content,
                    )
                    return SaveResult(site=_row_to_site(site_row), version=_row_to_version(version_row))
            except asyncpg.UniqueViolationError as e:
                if e.constraint_name != "sites_subdomain_key" or attempt == _SUBDOMAIN_ATTEMPTS - 1:
                    raise
                logger.info("site_repo: subdomain %s taken, drawing another", subdomain)

        raise RuntimeError("unreachable")  # pragma: no cover

    async def append_version(self, user_id: UUID, site_id: UUID, html_content: str) -> SaveResult | None:
        """
        Append a version to an existing site and make it current.

        The sequence number comes from a single UPDATE ... RETURNING on the
        site's counter. That statement row-locks the site until commit, so two
        concurrent saves to the same site get distinct, consecutive numbers.

        Args:
            user_id: Owner UUID
            site_id: Site UUID
            html_content: Document markup

        Returns:
            SaveResult, or None if the site does not exist or is not owned by user
        """
        async with user_conn(user_id) as conn:
            version_number = await conn.fetchval(
                """
                UPDATE sites
                SET version_seq = version_seq + 1
                WHERE id = $1
                RETURNING version_seq
                """,
                site_id,
            )
            if version_number is None:
                return None

            version_row = await conn.fetchrow(
                """
                INSERT INTO site_versions (id, site_id, version_number, html_content)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                """,
                uuid4(),
                site_id,
                version_number,
                html_content,
            )
            site_row = await conn.fetchrow(
                """
                UPDATE sites
                SET current_version_id = $2, updated_at = now()
                WHERE id = $1
                RETURNING *, $3::text AS html_content
                """,
                site_id,
                version_row["id"],
                html_content,
            )
            return SaveResult(site=_row_to_site(site_row), version=_row_to_version(version_row))

    async def update_title(self, user_id: UUID, site_id: UUID, title: str) -> Site | None:
        """
        Rename a site. Does not create a version.

        Returns:
            Updated Site, or None if not found or not owned by user
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                UPDATE sites
                SET title = $2, updated_at = now()
                WHERE id = $1
                RETURNING *
                """,
                site_id,
                title,
            )
            return _row_to_site(row) if row else None

    async def get(self, user_id: UUID, site_id: UUID) -> Site | None:
        """
        Get a site with its current markup. RLS ensures only the owner can access.

        Args:
            user_id: User UUID
            site_id: Site UUID

        Returns:
            Site if found and owned by user, None otherwise
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(f"{_SITE_WITH_HTML} WHERE s.id = $1", site_id)  # nosec B608
            return _row_to_site(row) if row else None

    async def list_for_user(self, user_id: UUID) -> list[Site]:
        """
        List a user's sites, most recently updated first, with current markup.

        Args:
            user_id: User UUID

        Returns:
            List of Site objects ordered by updated_at DESC
        """
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                f"{_SITE_WITH_HTML} WHERE s.user_id = $1 ORDER BY s.updated_at DESC",  # nosec B608
                user_id,
            )
            return [_row_to_site(row) for row in rows]

    async def set_published(self, user_id: UUID, site_id: UUID, is_published: bool) -> Site | None:
        """
        Set the publish flag. Setting the value it already has is a no-op success.

        Returns:
            Updated Site, or None if not found or not owned by user
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                UPDATE sites
                SET is_published = $2, updated_at = now()
                WHERE id = $1
                RETURNING *
                """,
                site_id,
                is_published,
            )
            return _row_to_site(row) if row else None

    async def delete(self, user_id: UUID, site_id: UUID) -> bool:
        """
        Delete a site. Versions and conversation go with it (ON DELETE CASCADE).

        Returns:
            True if deleted, False if not found or not owned by user
        """
        async with user_conn(user_id) as conn:
            result = await conn.execute("DELETE FROM sites WHERE id = $1", site_id)
            return result == "DELETE 1"

    async def connect_domain(self, user_id: UUID, site_id: UUID, domain: str) -> Site | None:
        """
        Record a custom domain for a site as pending. No DNS verification happens here.

        Returns:
            Updated Site, or None if not found or not owned by user
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                UPDATE sites
                SET custom_domain = $2, custom_domain_status = 'pending', updated_at = now()
                WHERE id = $1
                RETURNING *
                """,
                site_id,
                domain.lower(),
            )
            return _row_to_site(row) if row else None

    async def list_versions(self, user_id: UUID, site_id: UUID) -> list[SiteVersion]:
        """List a site's versions, newest first."""
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM site_versions
                WHERE site_id = $1
                ORDER BY version_number DESC
                """,
                site_id,
            )
            return [_row_to_version(row) for row in rows]

    async def get_version(self, user_id: UUID, site_id: UUID, version_number: int) -> SiteVersion | None:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "SELECT * FROM site_versions WHERE site_id = $1 AND version_number = $2",
                site_id,
                version_number,
            )
            return _row_to_version(row) if row else None

    async def get_published(self, subdomain: str) -> Site | None:
        """
        Get a published site by subdomain. Public lookup - no user scoping needed.

        Args:
            subdomain: Site subdomain slug

        Returns:
            Site with current markup if found and published, None otherwise
        """
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"{_SITE_WITH_HTML} WHERE s.subdomain = $1 AND s.is_published",  # nosec B608
                subdomain,
            )
            return _row_to_site(row) if row else None
