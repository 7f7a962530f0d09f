"""Starter page shown before the first instruction of a new site."""

from __future__ import annotations

from engine.kernel.types import Document

STARTER_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="bg-gray-50 flex items-center justify-center min-h-screen">
    <div class="text-center p-8" data-vibe-box="1">
        <h1 class="text-4xl font-bold text-gray-800 mb-4" data-vibe-box="2">Welcome to your new site</h1>
        <p class="text-gray-600 mb-8" data-vibe-box="3">Tell the AI on the left what you want to build!</p>
        <button class="bg-blue-600 text-white px-6 py-3 rounded-lg hover:bg-blue-700 transition" data-vibe-box="4">Get Started</button>
    </div>
</body>
</html>
"""

STARTER_DOCUMENT = Document(html=STARTER_HTML)
