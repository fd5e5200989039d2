"""Syntax tree abstraction over compiled scripts.

Scripts are tokenised with the pygments JavaScript lexer and a light
structural pass recovers the two node kinds the build cares about: call
expressions and identifier references. Nodes keep their source offsets so
a transformer can replace them in place and the tree can be rendered back
to text.
"""
import bisect
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from pygments.lexers.javascript import JavascriptLexer
from pygments.token import Comment, Error, Keyword, Name, Operator, Punctuation, String, Text, Whitespace

from pagesmith.compiler.exceptions import SourceSyntaxError

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}
BRACKETS = set(OPENERS) | CLOSERS
IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")

# `{` after one of these starts an object literal rather than a block
OBJECT_KEYWORDS = {"return", "yield", "await", "default", "throw", "in", "of", "case"}
KEY_MODIFIERS = {"get", "set", "async", "static", "*"}
VARIABLE_KEYWORDS = {"var", "let", "const"}


@dataclass
class ScriptToken:
    kind: object
    value: str
    start: int
    end: int


@dataclass
class ScriptNode:
    """Base for all script nodes."""
    start: int
    end: int
    line: int
    column: int


@dataclass
class Identifier(ScriptNode):
    name: str
    shorthand: bool = False  # `{ name }` object property


@dataclass
class StringLiteral(ScriptNode):
    value: str
    raw: str


@dataclass
class Argument(ScriptNode):
    """One argument of a call; literal is set when it is a plain string."""
    raw: str
    literal: Optional[StringLiteral] = None


@dataclass
class CallExpression(ScriptNode):
    callee: Identifier
    arguments: List[Argument] = field(default_factory=list)


@dataclass
class _Frame:
    opener: ScriptToken
    kind: str  # paren | bracket | block | object | class | pattern | interp
    expect_key: bool = False
    ternaries: int = 0
    identifier_mark: int = 0
    declaring: bool = False  # inside a var/let/const declarator list


_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def _unescape(body: str) -> str:
    simple = {"n": "\n", "t": "\t", "r": "\r"}
    return _ESCAPE_RE.sub(lambda m: simple.get(m.group(1), m.group(1)), body)


def _is_trivia(token: ScriptToken) -> bool:
    if token.kind in Whitespace or token.kind in Comment:
        return True
    return token.kind in Text and not token.value.strip()


class ScriptTree:
    """Parsed script with in-place replacement support."""

    def __init__(self, source: str, file_path: str = "") -> None:
        self.source = source
        self.file_path = file_path
        self.tokens: List[ScriptToken] = []
        self.calls: List[CallExpression] = []
        self.identifiers: List[Identifier] = []
        self._edits: Dict[Tuple[int, int], str] = {}
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]

    # Locations

    def location(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a source offset."""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def error(self, message: str, offset: int) -> SourceSyntaxError:
        line, column = self.location(offset)
        return SourceSyntaxError(message, file_path=self.file_path, line=line, column=column)

    # Traversal

    def walk(self) -> Iterator[ScriptNode]:
        """Calls and identifiers in source order."""
        nodes: List[ScriptNode] = [*self.calls, *self.identifiers]
        return iter(sorted(nodes, key=lambda node: node.start))

    def replace(self, node: ScriptNode, text: str) -> None:
        """Schedule node's source range to be replaced by text."""
        if isinstance(node, Identifier) and node.shorthand:
            text = f"{node.name}: {text}"
        self._edits[(node.start, node.end)] = text

    @property
    def modified(self) -> bool:
        return bool(self._edits)

    def render(self) -> str:
        """Source text with every scheduled replacement applied."""
        out = []
        cursor = 0
        for (start, end), text in sorted(self._edits.items()):
            if start < cursor:
                # nested inside a range that was already replaced
                continue
            out.append(self.source[cursor:start])
            out.append(text)
            cursor = end
        out.append(self.source[cursor:])
        return "".join(out)


class ScriptTransformer:
    """Visitor over a ScriptTree, in the manner of ast.NodeTransformer.

    visit_<NodeClass> methods return replacement source text, or None to
    leave the node untouched.
    """

    def transform(self, tree: ScriptTree) -> ScriptTree:
        self.tree = tree
        for node in tree.walk():
            replacement = self.visit(node)
            if replacement is not None:
                tree.replace(node, replacement)
        return tree

    def visit(self, node: ScriptNode) -> Optional[str]:
        visitor = getattr(self, f"visit_{type(node).__name__}", self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ScriptNode) -> Optional[str]:
        return None


class _ScriptParser:
    """Structural pass over the token stream."""

    def __init__(self, tree: ScriptTree, call_names: Sequence[str]) -> None:
        self.tree = tree
        self.call_names = set(call_names)
        self.significant: List[ScriptToken] = []
        self.pending_class = False
        self.pending_params = False

    def parse(self) -> None:
        self._tokenize()
        root = _Frame(ScriptToken(Text, "", 0, 0), "block")
        frames = [root]
        tokens = self.significant
        skip_until = 0

        for index, token in enumerate(tokens):
            if index < skip_until:
                continue
            prev = tokens[index - 1] if index > 0 else None
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            frame = frames[-1]
            value = token.value
            punctuation = token.kind in Punctuation

            if frame.declaring and self._ends_declaration(prev, token):
                frame.declaring = False

            if token.kind in String.Interpol:
                if value == "${":
                    frames.append(_Frame(token, "interp", identifier_mark=len(self.tree.identifiers)))
                else:
                    self._close(frames, token, "}")
                continue

            if frame.kind == "object" and frame.expect_key and not (punctuation and value in BRACKETS):
                if following is not None and following.value in (":", "("):
                    # property key, including keyword-named keys
                    frame.expect_key = False
                    self.pending_params = following.value == "("
                    continue
                if value in KEY_MODIFIERS and following is not None and following.value not in (",", "}"):
                    continue

            if punctuation and value in OPENERS:
                kind = self._opener_kind(value, prev, frame)
                if frame.kind == "object":
                    frame.expect_key = False
                frames.append(
                    _Frame(
                        token,
                        kind,
                        expect_key=kind == "object",
                        identifier_mark=len(self.tree.identifiers),
                    )
                )
                continue

            if punctuation and value in CLOSERS:
                closed = self._close(frames, token, value)
                if closed.kind == "paren" and following is not None and following.value == "=>":
                    # arrow function parameters are bindings, not references
                    del self.tree.identifiers[closed.identifier_mark:]
                continue

            if punctuation and value == "," and frame.kind == "object":
                frame.expect_key = True
                continue

            if token.kind in Operator:
                if value == "?" and not self._is_optional_chain(token, following):
                    frame.ternaries += 1
                elif value == ":" and frame.ternaries:
                    frame.ternaries -= 1

            if token.kind in Keyword.Declaration and not self._is_member(prev):
                if value in VARIABLE_KEYWORDS:
                    frame.declaring = True
                elif value == "class":
                    self.pending_class = True
                elif value == "function":
                    self.pending_params = True
            elif token.kind in Name.Other:
                skip_until = self._identifier(index, token, prev, following, frame)

            if frame.kind == "object":
                frame.expect_key = False

        if len(frames) > 1:
            opener = frames[-1].opener
            raise self.tree.error(f"Unclosed '{opener.value}'", opener.start)

    # Tokens

    def _tokenize(self) -> None:
        lexer = JavascriptLexer()
        source = self.tree.source
        for start, kind, value in lexer.get_tokens_unprocessed(source):
            if not value:
                continue
            token = ScriptToken(kind, value, start, start + len(value))
            if kind in Error:
                raise self.tree.error(f"Unexpected character {value!r}", start)
            self.tree.tokens.append(token)
            if not _is_trivia(token):
                self.significant.append(token)

    # Frames

    def _opener_kind(self, value: str, prev: Optional[ScriptToken], frame: _Frame) -> str:
        if value == "(":
            if self.pending_params:
                self.pending_params = False
                return "params"
            return "paren"
        if value == "{" and self.pending_class:
            self.pending_class = False
            return "class"
        if frame.kind in ("pattern", "params"):
            return "pattern"
        if prev is not None and prev.kind in Keyword.Declaration:
            return "pattern"
        if frame.declaring and self._is_comma(prev):
            # `let a = 1, { b } = c`
            return "pattern"
        if value == "[":
            return "bracket"
        if prev is None:
            return "block"
        if prev.kind in Keyword and prev.value in ("import", "export"):
            return "pattern"
        if prev.kind in String.Interpol:
            return "object"
        if prev.kind in Operator:
            if prev.value == ":" and frame.kind in ("block", "class"):
                # `case x: {` and labels open blocks; ternary branches don't
                return "object" if frame.ternaries else "block"
            return "object"
        if prev.kind in Punctuation:
            return "object" if prev.value in ("(", "[", ",", "...") else "block"
        if prev.kind in Keyword and prev.value in OBJECT_KEYWORDS:
            return "object"
        return "block"

    def _close(self, frames: List[_Frame], token: ScriptToken, value: str) -> _Frame:
        if len(frames) == 1:
            raise self.tree.error(f"Unexpected '{value}'", token.start)
        frame = frames.pop()
        expected = "}" if frame.kind == "interp" else OPENERS[frame.opener.value]
        if value != expected:
            raise self.tree.error(
                f"Expected '{expected}' to close '{frame.opener.value}' but found '{value}'",
                token.start,
            )
        return frame

    @staticmethod
    def _is_optional_chain(token: ScriptToken, following: Optional[ScriptToken]) -> bool:
        return following is not None and following.value == "." and following.start == token.end

    @staticmethod
    def _is_member(prev: Optional[ScriptToken]) -> bool:
        return prev is not None and prev.kind in Punctuation and prev.value == "."

    @staticmethod
    def _is_comma(prev: Optional[ScriptToken]) -> bool:
        return prev is not None and prev.kind in Punctuation and prev.value == ","

    def _ends_declaration(self, prev: Optional[ScriptToken], token: ScriptToken) -> bool:
        """A `;`, or a line break that automatic semicolon insertion would end on."""
        if prev is None:
            return False
        if prev.kind in Punctuation and prev.value == ";":
            return True
        if "\n" not in self.tree.source[prev.end:token.start]:
            return False
        if prev.kind in Operator or self._is_comma(prev) or prev.kind in Keyword.Declaration:
            return False
        if token.kind in Operator or (token.kind in Punctuation and token.value in (",", ".", "(", "[")):
            return False
        return True

    # Nodes

    def _node(self, token: ScriptToken) -> Identifier:
        line, column = self.tree.location(token.start)
        return Identifier(token.start, token.end, line, column, token.value)

    def _identifier(
        self,
        index: int,
        token: ScriptToken,
        prev: Optional[ScriptToken],
        following: Optional[ScriptToken],
        frame: _Frame,
    ) -> int:
        """Classify an identifier token; returns the index to resume from."""
        name = token.value
        if not IDENTIFIER_RE.fullmatch(name) or self._is_member(prev):
            return index
        if prev is not None and (prev.kind in Keyword.Declaration or prev.value in ("import", "as")):
            return index
        if frame.declaring and self._is_comma(prev):
            return index
        if frame.kind in ("pattern", "params"):
            return index
        if following is not None and following.value == "=>":
            return index

        if frame.kind == "class" and (prev is None or prev.value in ("{", "}", ";") or prev.value in KEY_MODIFIERS):
            # class member name
            self.pending_params = following is not None and following.value == "("
            return index

        if frame.kind == "object" and frame.expect_key:
            if following is not None and following.value in (",", "}"):
                node = self._node(token)
                node.shorthand = True
                self.tree.identifiers.append(node)
            return index

        if name in self.call_names and following is not None and following.value == "(":
            return self._call(index, token)

        self.tree.identifiers.append(self._node(token))
        return index

    def _call(self, index: int, token: ScriptToken) -> int:
        tokens = self.significant
        open_index = index + 1
        depth = 0
        close_index = None
        for cursor in range(open_index, len(tokens)):
            inner = tokens[cursor]
            if inner.kind in String:
                continue
            if inner.value in OPENERS:
                depth += 1
            elif inner.value in CLOSERS:
                depth -= 1
                if depth == 0:
                    close_index = cursor
                    break
        if close_index is None:
            raise self.tree.error(f"Unclosed '(' in call to {token.value}", tokens[open_index].start)

        arguments = []
        group: List[ScriptToken] = []
        depth = 0
        for inner in tokens[open_index + 1:close_index]:
            if inner.kind not in String and inner.value in OPENERS:
                depth += 1
            elif inner.kind not in String and inner.value in CLOSERS:
                depth -= 1
            if depth == 0 and inner.kind in Punctuation and inner.value == ",":
                arguments.append(self._argument(group, inner.start))
                group = []
                continue
            group.append(inner)
        if group:
            arguments.append(self._argument(group, group[0].start))

        callee = self._node(token)
        closer = tokens[close_index]
        self.tree.calls.append(
            CallExpression(token.start, closer.end, callee.line, callee.column, callee, arguments)
        )
        # the argument list is consumed with the call
        return close_index + 1

    def _argument(self, group: List[ScriptToken], offset: int) -> Argument:
        if not group:
            raise self.tree.error("Empty argument", offset)
        start, end = group[0].start, group[-1].end
        raw = self.tree.source[start:end]
        line, column = self.tree.location(start)
        return Argument(start, end, line, column, raw, self._literal(group, raw))

    def _literal(self, group: List[ScriptToken], raw: str) -> Optional[StringLiteral]:
        first = group[0]
        line, column = self.tree.location(first.start)
        if len(group) == 1 and (first.kind in String.Double or first.kind in String.Single):
            return StringLiteral(first.start, first.end, line, column, _unescape(raw[1:-1]), raw)
        if all(t.kind in String.Backtick for t in group) and len(raw) >= 2 and raw[0] == raw[-1] == "`":
            return StringLiteral(first.start, group[-1].end, line, column, _unescape(raw[1:-1]), raw)
        return None


def parse_script(source: str, file_path: str = "", call_names: Sequence[str] = ()) -> ScriptTree:
    """Parse source into a ScriptTree.

    call_names lists the functions whose call sites should be reported as
    CallExpression nodes; every other call is just a reference to its
    callee.
    """
    tree = ScriptTree(source, file_path)
    _ScriptParser(tree, call_names).parse()
    return tree
