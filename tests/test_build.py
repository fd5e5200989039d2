import re

import pytest

from conftest import LOGO_SVG, write_tree
from pagesmith.compiler.build import build_project, clean
from pagesmith.runtime.fingerprint import content_hash


@pytest.mark.asyncio
async def test_development_build(dev_context):
    report = await build_project(dev_context)
    dest = dev_context.layout.dest_dir

    assert report.ok, report.failures
    assert set(report.outputs) >= {
        "/index.html",
        "/about.html",
        "/assets/js/app.js",
        "/assets/css/site.css",
        "/assets/img/logo.svg",
    }
    assert dev_context.routes == {"root_path": "/", "about_path": "/about"}
    assert '<img src="/assets/img/logo.svg">' in (dest / "index.html").read_text()
    assert '<script src="/assets/js/app.js">' in (dest / "about.html").read_text()
    assert (dest / "assets/img/logo.svg").is_symlink()
    assert not (dest / "_footer.html").exists()
    assert not (dest / "layouts").exists()
    assert len(dev_context.fingerprints) == 0


@pytest.mark.asyncio
async def test_production_build(prod_context):
    report = await build_project(prod_context)
    dest = prod_context.layout.dest_dir
    assert report.ok, report.failures

    logo = f"/assets/img/logo-{content_hash(LOGO_SVG.encode())}.svg"
    script = prod_context.fingerprints.get("/assets/js/app.js")
    style = prod_context.fingerprints.get("/assets/css/site.css")
    assert re.fullmatch(r"/assets/js/app-[0-9a-f]{10}\.js", script)

    index = (dest / "index.html").read_text()
    about = (dest / "about.html").read_text()
    assert f'<img src="{logo}">' in index
    assert f'<script src="{script}">' in about
    assert logo in prod_context.layout.output_file(script).read_text()
    assert logo in prod_context.layout.output_file(style).read_text()


@pytest.mark.asyncio
async def test_production_build_is_deterministic(site, prod_context):
    await build_project(prod_context)
    first = prod_context.fingerprints.mapping()
    await build_project(prod_context)
    assert prod_context.fingerprints.mapping() == first


@pytest.mark.asyncio
async def test_build_reports_failures_and_keeps_going(dev_context):
    write_tree(
        dev_context.layout.src_dir,
        {
            "views/broken.html": "{% endblock %}",
            "assets/js/bad.js": "asset_path();",
        },
    )
    report = await build_project(dev_context)
    assert not report.ok
    assert len(report.failures) == 2
    assert (dev_context.layout.dest_dir / "index.html").is_file()
    assert (dev_context.layout.dest_dir / "assets/js/app.js").is_file()


@pytest.mark.asyncio
async def test_undecodable_script_does_not_abort_build(dev_context):
    (dev_context.layout.scripts_src / "bad.js").write_bytes(b"const x = '\xff\xfe';")
    report = await build_project(dev_context)

    assert len(report.failures) == 1
    assert "bad.js:1:12" in str(report.failures[0])
    assert (dev_context.layout.scripts_dest / "app.js").is_file()
    assert (dev_context.layout.dest_dir / "about.html").is_file()


@pytest.mark.asyncio
async def test_clean_resets_generation(prod_context):
    await build_project(prod_context)
    dest = prod_context.layout.dest_dir
    stale = dest / "stale.html"
    stale.write_text("old")

    await clean(prod_context)
    assert dest.is_dir()
    assert list(dest.iterdir()) == []
    assert len(prod_context.fingerprints) == 0
    assert len(prod_context.dependencies) == 0
    assert prod_context.routes == {}


@pytest.mark.asyncio
async def test_independent_contexts_share_nothing(dev_context, prod_context, tmp_path):
    from pagesmith.runtime.context import BuildContext

    other = BuildContext.create(dev_context.layout.src_dir, tmp_path / "other", environment="production")
    await build_project(prod_context)
    assert len(other.fingerprints) == 0
    assert len(other.dependencies) == 0
