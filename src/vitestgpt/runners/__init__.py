"""Test runner adapters for vitestgpt."""

from vitestgpt.runners.vitest import TestRunnerUnavailableError, TestRunResult, VitestRunner

__all__ = ["TestRunResult", "TestRunnerUnavailableError", "VitestRunner"]
