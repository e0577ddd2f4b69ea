"""vitestgpt - LLM-assisted Vitest unit test generator.

Generates unit tests for a single exported JavaScript/TypeScript function and
repairs them until they pass:
- Isolation: extract the function and only the declarations it references
- Generation: ask the LLM for a test plan, then for a Vitest file
- Repair: run vitest, feed failures back to the LLM, apply its directives
  (fix the test, fix the source with human review, or stop)
"""

__version__ = "0.1.0"
__author__ = "vitestgpt Contributors"
