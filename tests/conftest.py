from pathlib import Path
from typing import Dict

import pytest

from pagesmith.config import DEVELOPMENT, PRODUCTION
from pagesmith.runtime.context import BuildContext

LOGO_SVG = '<svg xmlns="http://www.w3.org/2000/svg"><circle r="4"/></svg>'


def write_tree(root: Path, files: Dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def site(tmp_path):
    """A small site: two pages, a partial, a layout, one script, one style, one image."""
    src = tmp_path / "src"
    write_tree(
        src,
        {
            "views/layouts/base.html": (
                "<html><head><title>{% block title %}{% endblock %}</title></head>"
                "<body>{% block body %}{% endblock %}</body></html>"
            ),
            "views/index.html": (
                '{% extends "layouts/base.html" %}'
                "{% block title %}Home{% endblock %}"
                '{% block body %}<a href="{{ about_path }}">About</a>'
                '<img src="{{ asset_path(\'logo.svg\') }}">{% endblock %}'
            ),
            "views/about.html": (
                '{% extends "layouts/base.html" %}'
                "{% block body %}{% include \"_footer.html\" %}"
                '<script src="{{ asset_path(\'app.js\') }}"></script>{% endblock %}'
            ),
            "views/_footer.html": "<footer>{{ canonical_path }}</footer>",
            "assets/js/app.js": 'const logo = asset_path("logo.svg");\nfetch(about_path);\n',
            "assets/css/site.scss": (
                '@import "colors";\n'
                ".logo { background: asset_url(\"logo.svg\"); color: $brand; }\n"
            ),
            "assets/css/_colors.scss": "$brand: #336699;\n",
            "assets/img/logo.svg": LOGO_SVG,
        },
    )
    return tmp_path


@pytest.fixture
def dev_context(site):
    return BuildContext.create(site / "src", site / "public", environment=DEVELOPMENT)


@pytest.fixture
def prod_context(site):
    return BuildContext.create(site / "src", site / "public", environment=PRODUCTION)
