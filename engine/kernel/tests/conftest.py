"""
Engine kernel test configuration.

Kernel tests are pure: no database, no network, no event loop.
"""

from __future__ import annotations

import pytest

from engine.kernel.types import Document

SAMPLE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8" data-vibe-box="99">
<script src="https://cdn.tailwindcss.com"></script>
<title>Bakery</title>
</head>
<body>
<header data-vibe-box="7"><nav><a href="#menu">Menu</a></nav></header>
<section data-vibe-box="7">
  <h1 data-vibe-box="12">Fresh bread</h1>
  <div class="grid">
    <p>Baked daily.</p>
    <div data-vibe-box="x"><img src="" alt="loaf" data-image-prompt="A golden sourdough loaf on a wooden board"></div>
  </div>
  <button>Order</button>
</section>
<footer><p>&copy; Bakery</p></footer>
</body>
</html>
"""


@pytest.fixture
def sample_page() -> str:
    return SAMPLE_PAGE


@pytest.fixture
def empty_page() -> Document:
    return Document(html="<!DOCTYPE html>\n<html><head></head><body><div>just text</div></body></html>")
