import pytest

from pagesmith.compiler.exceptions import HelperMisuseError, SourceSyntaxError
from pagesmith.compiler.injector import PATH_HELPERS, inject_constants
from pagesmith.config import DEVELOPMENT, PRODUCTION
from pagesmith.runtime.fingerprint import FingerprintStore, ReferenceResolver

ROUTES = {"root_path": "/", "about_path": "/about", "posts_path": "/posts/"}


@pytest.fixture
def dev_resolver():
    return ReferenceResolver(FingerprintStore(DEVELOPMENT))


def test_helper_call_becomes_literal(dev_resolver):
    out = inject_constants('const logo = asset_path("logo.svg");', ROUTES, dev_resolver.asset_path)
    assert out == 'const logo = "/assets/img/logo.svg";'
    assert "asset_path(" not in out


def test_forced_categories(dev_resolver):
    source = "\n".join(
        [
            "a = image_path('hero');",
            "b = script_path('vendor/app.js');",
            "c = stylesheet_path(`print.css`);",
        ]
    )
    out = inject_constants(source, ROUTES, dev_resolver.asset_path)
    assert '"/assets/img/hero"' in out
    assert '"/assets/js/vendor/app.js"' in out
    assert '"/assets/css/print.css"' in out
    for helper in PATH_HELPERS:
        assert f"{helper}(" not in out


def test_fingerprinted_asset_in_production():
    store = FingerprintStore(PRODUCTION)
    physical = store.on_compiled("/assets/img/logo.svg", b"<svg/>")
    out = inject_constants('img.src = asset_path("logo.svg")', {}, ReferenceResolver(store).asset_path)
    assert out == f'img.src = "{physical}"'


def test_route_identifiers_become_literals(dev_resolver):
    out = inject_constants("fetch(about_path); go(root_path);", ROUTES, dev_resolver.asset_path)
    assert out == 'fetch("/about"); go("/");'


def test_unknown_identifiers_are_untouched(dev_resolver):
    source = "const other_path = contact_path || about_pathname;"
    assert inject_constants(source, ROUTES, dev_resolver.asset_path) == source


def test_declared_names_are_left_alone(dev_resolver):
    source = "let a = 1, about_path = 2;\nfunction f({ root_path }, [posts_path]) { return 1; }"
    assert inject_constants(source, ROUTES, dev_resolver.asset_path) == source


def test_property_keys_are_preserved(dev_resolver):
    source = "const shape = { about_path: about_path, root_path };"
    out = inject_constants(source, ROUTES, dev_resolver.asset_path)
    assert out == 'const shape = { about_path: "/about", root_path: "/" };'


def test_member_access_is_preserved(dev_resolver):
    source = "window.config.about_path = 1;"
    assert inject_constants(source, ROUTES, dev_resolver.asset_path) == source


def test_zero_argument_call_is_located(dev_resolver):
    source = "const ok = 1;\nconst bad =   asset_path();\n"
    with pytest.raises(HelperMisuseError) as excinfo:
        inject_constants(source, ROUTES, dev_resolver.asset_path, file_path="src/app.js")
    error = excinfo.value
    assert (error.file_path, error.line, error.column) == ("src/app.js", 2, 15)
    assert str(error).startswith("src/app.js:2:15:")


def test_non_literal_argument_is_misuse(dev_resolver):
    with pytest.raises(HelperMisuseError, match="string literal"):
        inject_constants("asset_path(name)", ROUTES, dev_resolver.asset_path)


def test_extra_arguments_are_misuse(dev_resolver):
    with pytest.raises(HelperMisuseError, match="exactly one"):
        inject_constants("asset_path('a.png', 'b.png')", ROUTES, dev_resolver.asset_path)


def test_misuse_is_a_syntax_error(dev_resolver):
    with pytest.raises(SourceSyntaxError):
        inject_constants("image_path()", ROUTES, dev_resolver.asset_path)


def test_strings_and_comments_are_left_alone(dev_resolver):
    source = '// about_path\nconst s = "about_path";\n'
    assert inject_constants(source, ROUTES, dev_resolver.asset_path) == source
