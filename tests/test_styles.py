import re

import pytest

from conftest import write_tree
from pagesmith.compiler.exceptions import SourceSyntaxError
from pagesmith.compiler.styles import (
    compile_style,
    find_styles,
    is_style_partial,
    style_functions,
    style_output_name,
)
from pagesmith.config import DEVELOPMENT, PRODUCTION
from pagesmith.runtime.fingerprint import FingerprintStore, ReferenceResolver


def test_callbacks_resolve_through_resolver():
    functions = style_functions(ReferenceResolver(FingerprintStore(DEVELOPMENT)).asset_path)
    assert set(functions) == {"asset_url", "asset_path"}
    assert functions["asset_path"]("logo.svg") == "/assets/img/logo.svg"
    assert functions["asset_url"]("logo.svg") == 'url("/assets/img/logo.svg")'


def test_asset_url_in_development(tmp_path):
    write_tree(tmp_path, {"site.scss": '.logo { background: asset_url("logo.svg"); }\n'})
    functions = style_functions(ReferenceResolver(FingerprintStore(DEVELOPMENT)).asset_path)
    css = compile_style(tmp_path / "site.scss", functions)
    assert "/assets/img/logo.svg" in css


def test_asset_url_in_production(tmp_path):
    write_tree(tmp_path, {"site.scss": '.logo { background: asset_url("logo.svg"); }\n'})
    store = FingerprintStore(PRODUCTION)
    physical = store.on_compiled("/assets/img/logo.svg", b"<svg/>")
    assert re.fullmatch(r"/assets/img/logo-[0-9a-f]{10}\.svg", physical)

    css = compile_style(
        tmp_path / "site.scss", style_functions(ReferenceResolver(store).asset_path), minify=True
    )
    assert physical in css
    assert "\n  " not in css


def test_imports_resolve_against_include_paths(tmp_path):
    write_tree(
        tmp_path,
        {
            "css/_colors.scss": "$brand: #336699;\n",
            "css/pages/home.scss": '@import "colors";\nbody { color: $brand; }\n',
        },
    )
    css = compile_style(tmp_path / "css/pages/home.scss", {}, include_paths=[tmp_path / "css"])
    assert "#336699" in css


def test_malformed_style_is_located(tmp_path):
    write_tree(tmp_path, {"broken.scss": "body {\n  color: red;\n  width: $missing;\n}\n"})
    with pytest.raises(SourceSyntaxError) as excinfo:
        compile_style(tmp_path / "broken.scss", {})
    error = excinfo.value
    assert error.file_path.endswith("broken.scss")
    assert error.line == 3


def test_find_styles_skips_partials(tmp_path):
    write_tree(
        tmp_path,
        {
            "site.scss": "",
            "_colors.scss": "",
            "print.css": "",
            "notes.md": "",
        },
    )
    found = [p.name for p in find_styles(tmp_path)]
    assert found == ["print.css", "site.scss"]
    assert len(find_styles(tmp_path, include_partials=True)) == 3
    assert find_styles(tmp_path / "missing") == []


def test_names():
    from pathlib import Path

    assert is_style_partial(Path("_mixins.scss"))
    assert not is_style_partial(Path("site.scss"))
    assert style_output_name(Path("pages/home.scss")) == Path("pages/home.css")
