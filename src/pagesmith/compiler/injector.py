"""Build-time substitution of path helpers inside compiled scripts."""
import json
from typing import Callable, Dict, Mapping, Optional

from pagesmith.compiler.exceptions import HelperMisuseError
from pagesmith.compiler.script_ast import (
    CallExpression,
    Identifier,
    ScriptTransformer,
    ScriptTree,
    parse_script,
)

# helper name -> forced asset category (None: judge by extension)
PATH_HELPERS: Dict[str, Optional[str]] = {
    "asset_path": None,
    "image_path": "image",
    "script_path": "script",
    "stylesheet_path": "stylesheet",
}

AssetResolver = Callable[[str, Optional[str]], str]


def js_string(value: str) -> str:
    """Literal source text for a string constant."""
    return json.dumps(value)


class ConstantInjector(ScriptTransformer):
    """Rewrites path helper calls and route identifiers into string literals.

    `asset_path("logo.svg")` becomes the resolved asset path and a bare
    `about_path` becomes the route it names. Object keys sharing a helper's
    name are left alone.
    """

    def __init__(self, routes: Mapping[str, str], resolve_asset: AssetResolver) -> None:
        self.routes = routes
        self.resolve_asset = resolve_asset

    def visit_CallExpression(self, node: CallExpression) -> Optional[str]:
        name = node.callee.name
        if name not in PATH_HELPERS:
            return None
        if not node.arguments:
            raise self._misuse(node, f"{name}() requires a path argument")
        if len(node.arguments) > 1:
            raise self._misuse(node, f"{name}() takes exactly one argument, got {len(node.arguments)}")
        literal = node.arguments[0].literal
        if literal is None:
            raise self._misuse(
                node, f"{name}() argument must be a string literal, got {node.arguments[0].raw}"
            )
        return js_string(self.resolve_asset(literal.value, PATH_HELPERS[name]))

    def visit_Identifier(self, node: Identifier) -> Optional[str]:
        if node.name in self.routes:
            return js_string(self.routes[node.name])
        return None

    def _misuse(self, node: CallExpression, message: str) -> HelperMisuseError:
        return HelperMisuseError(
            message, file_path=self.tree.file_path, line=node.line, column=node.column
        )


def inject_constants(
    source: str,
    routes: Mapping[str, str],
    resolve_asset: AssetResolver,
    file_path: str = "",
) -> str:
    """Parse a script, substitute every helper and return the new source."""
    tree: ScriptTree = parse_script(source, file_path, call_names=list(PATH_HELPERS))
    ConstantInjector(routes, resolve_asset).transform(tree)
    return tree.render()
