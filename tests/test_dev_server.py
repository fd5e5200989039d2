import asyncio

import pytest
from starlette.testclient import TestClient

from conftest import write_tree
from pagesmith.compiler.build import build_project
from pagesmith.runtime.dev_server import create_app


@pytest.fixture
def client(tmp_path):
    write_tree(
        tmp_path / "public",
        {
            "index.html": "home",
            "about.html": "about",
            "posts/index.html": "posts",
            "assets/js/app.js": "app",
        },
    )
    return TestClient(create_app(tmp_path / "public"))


def test_root_serves_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "home"


def test_extensionless_path_serves_html(client):
    response = client.get("/about")
    assert response.status_code == 200
    assert response.text == "about"
    assert response.headers["content-type"].startswith("text/html")


def test_directory_serves_index(client):
    assert client.get("/posts/").text == "posts"


def test_assets_are_served_as_is(client):
    assert client.get("/assets/js/app.js").text == "app"
    assert client.get("/about.html").text == "about"


def test_missing_page_is_404(client):
    assert client.get("/missing").status_code == 404


def test_serves_symlinked_development_assets(dev_context):
    asyncio.run(build_project(dev_context))
    client = TestClient(create_app(dev_context.layout.dest_dir))
    response = client.get("/assets/img/logo.svg")
    assert response.status_code == 200
    assert "<svg" in response.text
