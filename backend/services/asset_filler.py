"""
Asset filling stage.

Resolves every image placeholder in a Document concurrently. A placeholder
whose synthesis fails gets a deterministic fallback image, so one bad image
never fails the page. The stage returns only after every resolution settles.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
from collections.abc import Awaitable, Callable
from urllib.parse import quote

from backend.config import settings
from backend.services.ai_provider import AIProvider, ai_provider
from backend.services.r2 import R2Service, r2_service
from engine.kernel.boxes import find_placeholder_tags, parse_markup, serialize
from engine.kernel.errors import AssetResolutionError
from engine.kernel.types import PROMPT_ATTR, Document

logger = logging.getLogger(__name__)

StatusSink = Callable[[str], Awaitable[None]]

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def fallback_image_url(prompt: str) -> str:
    """Placeholder image that shows the prompt text. Same prompt, same URL."""
    return f"https://placehold.co/800x600?text={quote(prompt[:100], safe='')}"


class AssetFiller:
    """Replaces data-image-prompt placeholders with real image sources."""

    def __init__(
        self,
        provider: AIProvider | None = None,
        asset_store: R2Service | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.provider = provider or ai_provider
        self.asset_store = asset_store
        self.max_concurrency = max(1, max_concurrency or settings.IMAGE_CONCURRENCY)

    async def fill(self, document: Document, on_status: StatusSink | None = None) -> Document:
        """
        Resolve all placeholders in document.

        Args:
            document: Annotated Document from the coder
            on_status: Optional progress sink

        Returns:
            A Document with no remaining placeholders. If there were none to
            begin with, the same Document is returned and nothing is called.
        """
        soup = parse_markup(document.html)
        tags = find_placeholder_tags(soup)
        # Blank prompts are not placeholders; drop the marker so it cannot linger
        blanks = [t for t in soup.find_all("img", attrs={PROMPT_ATTR: True}) if t not in tags]

        if not tags:
            if not blanks:
                return document
            for tag in blanks:
                del tag[PROMPT_ATTR]
            return Document(html=serialize(soup))

        if on_status is not None:
            await on_status(f"Generating {len(tags)} images...")

        prompts = [tag[PROMPT_ATTR].strip() for tag in tags]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def resolve(prompt: str) -> str:
            async with semaphore:
                try:
                    return await self._synthesize(prompt)
                except AssetResolutionError as e:
                    logger.warning("asset_filler: %s, using fallback", e)
                    return fallback_image_url(prompt)

        sources = await asyncio.gather(*(resolve(p) for p in prompts))

        for tag, src in zip(tags, sources, strict=True):
            tag["src"] = src
            del tag[PROMPT_ATTR]
        for tag in blanks:
            del tag[PROMPT_ATTR]

        return Document(html=serialize(soup))

    async def _synthesize(self, prompt: str) -> str:
        """
        Generate one image and turn it into a src value.

        Raises:
            AssetResolutionError: On any failure, including a missing key
        """
        if not settings.OPENAI_API_KEY:
            raise AssetResolutionError(prompt, "OPENAI_API_KEY is not set")
        try:
            data, mime = await self.provider.generate_image(prompt)
            if self.asset_store is not None:
                digest = hashlib.sha256(data).hexdigest()[:24]
                key = f"images/{digest}.{_EXTENSIONS.get(mime, 'bin')}"
                return await self.asset_store.upload_asset(key, data, mime)
            return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
        except Exception as e:
            raise AssetResolutionError(prompt, str(e)) from e


def build_asset_filler() -> AssetFiller:
    """AssetFiller wired to the configured storage mode."""
    if settings.ASSET_STORAGE == "r2":
        return AssetFiller(asset_store=r2_service)
    return AssetFiller()
