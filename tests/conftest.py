"""Shared fixtures: a throwaway site tree and a client for it."""

import pytest
from fastapi.testclient import TestClient

from design_server.core.config import Settings
from design_server.main import create_app

PAGES = {
    "ui-designs/index-standalone.html": "<h1>Standalone</h1>\n",
    "ui-designs/plain.html": "<p>No directives here.</p>\n",
    "ui-designs/with-include.html": (
        "<body>\n"
        "<!--# include virtual=\"/partials/header.html\" -->\n"
        "<main>Body</main>\n"
        "</body>\n"
    ),
    "ui-designs/cards/list.html": "<ul><!--# include file=\"item.html\" --></ul>\n",
    "ui-designs/cards/item.html": "<li>Card</li>",
    "ui-designs/partials/header.html": "<header>Shared header</header>",
    "ui-designs/broken.html": "<!--# include virtual=\"/partials/missing.html\" -->\n",
    "ui-designs/greeting.html": "<p>Hello <!--# echo var=\"project\" --></p>\n",
    "ui-designs/style.css": "body { color: #222; }\n",
    "secret.html": "<p>outside the designs directory</p>\n",
}


@pytest.fixture
def site(tmp_path):
    for name, text in PAGES.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return tmp_path


@pytest.fixture
def settings(site):
    return Settings(root_dir=site, payload={"project": "Atlas"})


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))
