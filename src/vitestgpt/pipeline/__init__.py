"""Test-generation pipeline.

Stages run in a fixed order against one PipelineContext:

1. Setup: resolve vitest, read the source, truncate the output file
2. Analysis: isolate the target function
3. Testplan: ask the LLM for a test plan
4. Write: ask the LLM for the test file
5. Test: run and repair the tests
6. Finish: log a summary
"""

import logging
from pathlib import Path

from vitestgpt.analyzers.isolator import FunctionIsolator
from vitestgpt.config import VitestGPTConfig
from vitestgpt.llm.client import LLMClient, create_client
from vitestgpt.models.context import PipelineContext
from vitestgpt.pipeline.actions import (
    Exit,
    FixSourceCode,
    FixUnitTest,
    RepairAction,
    Unrecognized,
    parse_repair_action,
)
from vitestgpt.pipeline.orchestrator import Orchestrator
from vitestgpt.pipeline.repair import RepairState, TestRepairLoop
from vitestgpt.pipeline.stage import Stage
from vitestgpt.pipeline.stages import (
    AnalysisStage,
    FinishStage,
    SetupStage,
    TestplanStage,
    TestStage,
    WriteStage,
)
from vitestgpt.runners.vitest import VitestRunner
from vitestgpt.templates.renderer import PromptRenderer
from vitestgpt.utils.logging import get_logger

__all__ = [
    "AnalysisStage",
    "Exit",
    "FinishStage",
    "FixSourceCode",
    "FixUnitTest",
    "Orchestrator",
    "RepairAction",
    "RepairState",
    "SetupStage",
    "Stage",
    "TestRepairLoop",
    "TestStage",
    "TestplanStage",
    "Unrecognized",
    "WriteStage",
    "build_stages",
    "parse_repair_action",
    "run_pipeline",
]


def build_stages(
    config: VitestGPTConfig,
    runner: VitestRunner,
    renderer: PromptRenderer,
    isolator: FunctionIsolator | None = None,
    logger: logging.Logger | None = None,
    model: str | None = None,
) -> tuple[Stage, ...]:
    """Build the ordered stage sequence.

    Args:
        config: Loaded configuration (runner settings are read from here)
        runner: Test runner shared by Setup and Test
        renderer: Prompt renderer shared by the LLM stages
        isolator: Function isolator for the Analysis stage
        logger: Logger injected into every stage
        model: Model override for every LLM request
    """
    logger = logger or get_logger()
    loop = TestRepairLoop(
        runner=runner,
        renderer=renderer,
        logger=logger,
        attempt_limit=config.runner.attempt_limit,
        grace_period=config.runner.grace_period,
        poll_interval=config.runner.poll_interval,
        test_name_pattern=config.runner.test_name_pattern,
        model=model,
    )
    return (
        SetupStage(runner, logger=logger),
        AnalysisStage(isolator, logger=logger),
        TestplanStage(renderer, model=model, logger=logger),
        WriteStage(renderer, model=model, logger=logger),
        TestStage(loop, logger=logger),
        FinishStage(logger=logger),
    )


def run_pipeline(
    input_file: Path | str,
    function_name: str,
    output_file: Path | str,
    config: VitestGPTConfig | None = None,
    client: LLMClient | None = None,
    runner: VitestRunner | None = None,
    renderer: PromptRenderer | None = None,
    logger: logging.Logger | None = None,
    model: str | None = None,
) -> PipelineContext:
    """Generate and repair unit tests for one function.

    Args:
        input_file: Source file containing the function
        function_name: Exported function to test
        output_file: Test file to write
        config: Configuration (defaults used if None)
        client: LLM client (created from config.llm if None)
        runner: Test runner (created from config.runner if None)
        renderer: Prompt renderer (created from config.prompts if None)
        logger: Logger injected into every stage
        model: Model override for every LLM request

    Returns:
        The final PipelineContext; ``should_continue`` is False if any stage halted

    Raises:
        ValueError: If the LLM client cannot be created
    """
    config = config or VitestGPTConfig()
    logger = logger or get_logger()
    client = client or create_client(config.llm)
    runner = runner or VitestRunner(timeout=config.runner.timeout)
    renderer = renderer or PromptRenderer(config.prompts_dir)

    context = PipelineContext(
        input_file=Path(input_file),
        function_name=function_name,
        output_file=Path(output_file),
        client=client,
        system_prompt=renderer.render("systemPrompt"),
        logger=logger,
    )
    logger.debug("Starting pipeline run %s", context.id)

    stages = build_stages(config, runner, renderer, logger=logger, model=model)
    return Orchestrator(stages, logger=logger).run(context)
