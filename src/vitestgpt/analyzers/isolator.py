"""Function isolation via tree-sitter.

Extracts the minimal text needed to understand and test one top-level
JavaScript/TypeScript function:
- the import bindings, variables, interfaces, type aliases, enums and classes
  whose names the function references (verbatim, in source order)
- the /** ... */ documentation comment directly above the function
- the function declaration itself, including its ``export`` keyword

Only direct children of the program are considered, so nested functions with
the same name are never matched. Identifier closure is a single level: a
referenced declaration's own references are not followed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from vitestgpt.utils.logging import get_logger

_logger = get_logger()

# Language tag to file extension mapping
LANGUAGE_EXTENSIONS: dict[str, list[str]] = {
    "typescript": [".ts", ".mts", ".cts"],
    "tsx": [".tsx"],
    "javascript": [".js", ".mjs", ".cjs", ".jsx"],
}

EXTENSION_TO_LANGUAGE: dict[str, str] = {}
for lang, exts in LANGUAGE_EXTENSIONS.items():
    for ext in exts:
        EXTENSION_TO_LANGUAGE[ext] = lang

# Nodes whose text counts as a referenced name
IDENTIFIER_NODE_TYPES = frozenset(
    {
        "identifier",
        "type_identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
    }
)

FUNCTION_NODE_TYPES = frozenset({"function_declaration", "function_expression", "function"})

VARIABLE_NODE_TYPES = frozenset({"lexical_declaration", "variable_declaration"})

NAMED_DECLARATION_TYPES = frozenset(
    {
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
        "class_declaration",
        "abstract_class_declaration",
    }
)

PIECE_SEPARATOR = "\n\n"


class TreeSitterUnavailableError(Exception):
    """Raised when tree-sitter grammars cannot be loaded."""

    def __init__(self, message: str | None = None) -> None:
        self.message = message or (
            "tree-sitter is not available. "
            "Run `vitestgpt check` to verify dependencies."
        )
        super().__init__(self.message)


class IsolationStatus(Enum):
    """Outcome of looking up the target function."""

    ISOLATED = "isolated"
    NOT_FOUND = "not_found"
    NOT_EXPORTED = "not_exported"
    MALFORMED = "malformed"


@dataclass
class IsolatedFunction:
    """Result of isolating one function.

    Attributes:
        function_name: Name that was looked up
        status: Lookup outcome
        snippet: Extracted text (empty unless the declaration was found intact)
        exported: Declaration carries ``export``
        default_export: Declaration is ``export default``
        is_async: Declaration is ``async``
        dependencies: Names of the top-level declarations pulled into the snippet
    """

    function_name: str
    status: IsolationStatus
    snippet: str = ""
    exported: bool = False
    default_export: bool = False
    is_async: bool = False
    dependencies: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        """True if a top-level declaration with the name exists."""
        return self.status in (IsolationStatus.ISOLATED, IsolationStatus.NOT_EXPORTED)


@dataclass
class _FunctionMatch:
    statement: Any
    function: Any
    exported: bool
    default_export: bool


class FunctionIsolator:
    """Extracts a self-contained snippet for one named top-level function.

    Parsers are created lazily per language tag and reused.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, Any] = {}

    def _get_parser(self, language: str) -> Any:
        """Return a cached tree-sitter parser for ``language``.

        Raises:
            ValueError: If the language tag is unknown
            TreeSitterUnavailableError: If the grammar cannot be loaded
        """
        if language not in LANGUAGE_EXTENSIONS:
            raise ValueError(
                f"Unsupported language '{language}'. "
                f"Must be one of: {sorted(LANGUAGE_EXTENSIONS)}"
            )

        if language not in self._parsers:
            try:
                from tree_sitter_language_pack import get_parser
            except ImportError as e:
                raise TreeSitterUnavailableError(
                    f"tree-sitter-language-pack not installed: {e}"
                ) from e

            try:
                self._parsers[language] = get_parser(language)
            except Exception as e:
                raise TreeSitterUnavailableError(
                    f"Failed to initialize {language} parser: {e}"
                ) from e
            _logger.debug("Initialized tree-sitter parser for %s", language)

        return self._parsers[language]

    def check_available(self, language: str = "typescript") -> bool:
        """Check if the grammar for ``language`` can be loaded."""
        try:
            self._get_parser(language)
            return True
        except TreeSitterUnavailableError:
            return False

    def isolate(
        self,
        source: str,
        function_name: str,
        language: str = "typescript",
    ) -> IsolatedFunction:
        """Isolate ``function_name`` from ``source``.

        Args:
            source: Full source file text
            function_name: Name of the top-level function to extract
            language: Grammar to parse with (typescript, tsx, javascript)

        Returns:
            IsolatedFunction describing the outcome
        """
        source_bytes = source.encode("utf-8")
        tree = self._get_parser(language).parse(source_bytes)
        root = tree.root_node

        match = self._find_function(root, source_bytes, function_name)
        if match is None:
            _logger.debug("No top-level function named %s", function_name)
            return IsolatedFunction(function_name=function_name, status=IsolationStatus.NOT_FOUND)

        is_async = any(child.type == "async" for child in match.function.children)

        if self._body_unterminated(match.function):
            _logger.debug("Declaration of %s is not brace-balanced", function_name)
            return IsolatedFunction(
                function_name=function_name,
                status=IsolationStatus.MALFORMED,
                exported=match.exported,
                default_export=match.default_export,
                is_async=is_async,
            )

        if match.statement.has_error:
            _logger.warning(
                "Declaration of %s contains syntax errors, isolating it anyway", function_name
            )

        used_names = self._collect_identifiers(match.function, source_bytes)
        used_names.add(function_name)

        pieces: list[str] = []
        dependencies: list[str] = []
        for statement in root.named_children:
            if statement == match.statement:
                continue
            declared = self._declared_names(statement, source_bytes)
            referenced = declared & used_names
            if referenced:
                pieces.append(_text(source_bytes, statement))
                dependencies.extend(sorted(referenced))

        doc_comment = self._doc_comment(match.statement, source_bytes)
        if doc_comment:
            pieces.append(doc_comment)

        pieces.append(_text(source_bytes, match.statement))

        return IsolatedFunction(
            function_name=function_name,
            status=IsolationStatus.ISOLATED if match.exported else IsolationStatus.NOT_EXPORTED,
            snippet=PIECE_SEPARATOR.join(pieces),
            exported=match.exported,
            default_export=match.default_export,
            is_async=is_async,
            dependencies=dependencies,
        )

    # =========================================================================
    # Lookup
    # =========================================================================

    def _find_function(
        self, root: Any, source_bytes: bytes, function_name: str
    ) -> _FunctionMatch | None:
        """Find the top-level declaration, preferring an exported one."""
        fallback: _FunctionMatch | None = None

        for statement in root.named_children:
            match = self._match_function(statement)
            if match is None:
                continue

            name_node = match.function.child_by_field_name("name")
            if name_node is None or _text(source_bytes, name_node) != function_name:
                continue

            if match.exported:
                return match
            if fallback is None:
                fallback = match

        return fallback

    def _match_function(self, statement: Any) -> _FunctionMatch | None:
        if statement.type == "function_declaration":
            return _FunctionMatch(statement, statement, exported=False, default_export=False)

        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                declaration = statement.child_by_field_name("value")
            if declaration is not None and declaration.type in FUNCTION_NODE_TYPES:
                default_export = any(child.type == "default" for child in statement.children)
                return _FunctionMatch(
                    statement, declaration, exported=True, default_export=default_export
                )

        return None

    @staticmethod
    def _body_unterminated(function: Any) -> bool:
        """True if the body's closing brace is absent or was inserted by error recovery."""
        body = function.child_by_field_name("body")
        if body is None or not body.children:
            return True
        closing = body.children[-1]
        return closing.type != "}" or closing.is_missing

    # =========================================================================
    # Name collection
    # =========================================================================

    def _collect_identifiers(self, node: Any, source_bytes: bytes) -> set[str]:
        """Collect the text of every identifier-like node under ``node``."""
        names: set[str] = set()
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in IDENTIFIER_NODE_TYPES:
                names.add(_text(source_bytes, current))
            stack.extend(current.children)
        return names

    def _declared_names(self, statement: Any, source_bytes: bytes) -> set[str]:
        """Names bound by a top-level statement that may join the snippet."""
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                return set()
            statement = declaration

        if statement.type == "import_statement":
            return self._import_bindings(statement, source_bytes)

        if statement.type in VARIABLE_NODE_TYPES:
            names: set[str] = set()
            for declarator in statement.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is not None:
                    names |= self._collect_identifiers(name_node, source_bytes)
            return names

        if statement.type in NAMED_DECLARATION_TYPES:
            name_node = statement.child_by_field_name("name")
            if name_node is not None:
                return {_text(source_bytes, name_node)}

        return set()

    def _import_bindings(self, statement: Any, source_bytes: bytes) -> set[str]:
        """Local names bound by an import (default, namespace, named)."""
        names: set[str] = set()

        for clause in statement.named_children:
            if clause.type == "import_require_clause":
                for child in clause.named_children:
                    if child.type == "identifier":
                        names.add(_text(source_bytes, child))
                        break
                continue

            if clause.type != "import_clause":
                continue

            for child in clause.named_children:
                if child.type == "identifier":
                    names.add(_text(source_bytes, child))
                elif child.type == "namespace_import":
                    names |= self._collect_identifiers(child, source_bytes)
                elif child.type == "named_imports":
                    for specifier in child.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        binding = specifier.child_by_field_name("alias")
                        if binding is None:
                            binding = specifier.child_by_field_name("name")
                        if binding is not None:
                            names.add(_text(source_bytes, binding))

        return names

    def _doc_comment(self, statement: Any, source_bytes: bytes) -> str | None:
        """Return the /** */ block directly above ``statement``, if any."""
        previous = statement.prev_sibling
        if previous is None or previous.type != "comment":
            return None

        text = _text(source_bytes, previous)
        if not text.startswith("/**"):
            return None

        gap = source_bytes[previous.end_byte : statement.start_byte]
        if gap.strip() or gap.count(b"\n") > 1:
            return None

        return text


def _text(source_bytes: bytes, node: Any) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8")


_default_isolator: FunctionIsolator | None = None


def isolate_function(source: str, function_name: str, language: str = "typescript") -> str:
    """Return the isolated snippet for an exported top-level function.

    Returns an empty string when the function is absent, not exported, or
    its body never closes.
    """
    global _default_isolator
    if _default_isolator is None:
        _default_isolator = FunctionIsolator()

    result = _default_isolator.isolate(source, function_name, language)
    if result.status is IsolationStatus.ISOLATED:
        return result.snippet
    return ""
