"""vitestgpt analyzers - deterministic source analysis.

Analyzers run BEFORE any LLM invocation and never modify the source.

Analyzers:
- FunctionIsolator: tree-sitter identifier closure for one top-level function
"""

from vitestgpt.analyzers.isolator import (
    EXTENSION_TO_LANGUAGE,
    LANGUAGE_EXTENSIONS,
    FunctionIsolator,
    IsolatedFunction,
    IsolationStatus,
    TreeSitterUnavailableError,
    isolate_function,
)

__all__ = [
    "EXTENSION_TO_LANGUAGE",
    "FunctionIsolator",
    "IsolatedFunction",
    "IsolationStatus",
    "LANGUAGE_EXTENSIONS",
    "TreeSitterUnavailableError",
    "isolate_function",
]
