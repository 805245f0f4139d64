#!/usr/bin/env python3
"""Run the analysis agent over context-data.md using Claude Agent SDK.

The agent reads the context document and writes analysis-result.json.
When the session ends, its usage, cost and turn count are written to the
execution telemetry file for the extract step.
"""

import asyncio
import json
import logging
import os

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ResultMessage,
    TextBlock,
    ToolUseBlock,
)

from watchdogctl.config import (
    ANALYSIS_RESULT_FILE,
    CONTEXT_DOCUMENT_FILE,
    Config,
    MissingCredentialError,
)
from watchdogctl.prompts.analyzer import build_system_prompt, build_task
from watchdogctl.readers import write_json
from watchdogctl.validate import calculate_max_turns

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

BASE_TOOLS = ["Read", "Write", "Grep", "Glob"]
ACTION_TOOLS = ["Edit", "Bash"]


def allowed_tools(config: Config) -> list[str]:
    """Shell and edit access only when the run may act on the repository."""
    if (config.create_issues_enabled or config.create_fixes_enabled
            or config.rerun_tests_enabled):
        return BASE_TOOLS + ACTION_TOOLS
    return list(BASE_TOOLS)


def tool_summary(block: ToolUseBlock) -> str:
    """Format a one-line summary of a tool call."""
    inp = json.dumps(block.input, ensure_ascii=False)
    if len(inp) > 200:
        inp = inp[:197] + "..."
    return f"{block.name}: {inp}"


def log_blocks(message: AssistantMessage, prefix: str = "") -> None:
    for block in message.content:
        if isinstance(block, TextBlock) and block.text.strip():
            logger.info("%s%s", prefix, block.text.strip()[:600])
        elif isinstance(block, ToolUseBlock):
            logger.info("%s%s", prefix, tool_summary(block))


def telemetry_record(message) -> dict:
    """Serialize a ResultMessage into the execution file's result entry."""
    return {
        "type": "result",
        "subtype": getattr(message, "subtype", ""),
        "is_error": getattr(message, "is_error", False),
        "num_turns": getattr(message, "num_turns", None),
        "duration_ms": getattr(message, "duration_ms", None),
        "total_cost_usd": getattr(message, "total_cost_usd", None),
        "usage": getattr(message, "usage", None) or {},
    }


async def _run_analysis(config: Config, max_turns: int):
    """Run one agent session; return its ResultMessage or None."""
    options = ClaudeAgentOptions(
        model=config.model,
        system_prompt=build_system_prompt(config),
        allowed_tools=allowed_tools(config),
        permission_mode="acceptEdits",
        max_turns=max_turns,
        cwd=os.path.abspath(config.search_root),
    )
    async with ClaudeSDKClient(options=options) as client:
        await client.query(build_task(config))
        async for message in client.receive_messages():
            if isinstance(message, ResultMessage):
                logger.info("[analyze] Done in %d turns", message.num_turns)
                return message
            elif isinstance(message, AssistantMessage):
                log_blocks(message, "[analyze] ")
    return None


def run(config: Config) -> int:
    """Launch the analysis agent. Returns 0 if it wrote a result file."""
    try:
        config.require_api_key()
    except MissingCredentialError as e:
        logger.error("%s", e)
        return STATUS_ERROR

    context_path = config.path(CONTEXT_DOCUMENT_FILE)
    if not os.path.exists(context_path):
        logger.error("Context document %s not found, run prepare first", context_path)
        return STATUS_ERROR

    max_turns = calculate_max_turns(config)
    logger.info("Starting analysis agent (model %s, max %d turns)...", config.model, max_turns)
    try:
        result = asyncio.run(_run_analysis(config, max_turns))
    except Exception as e:
        logger.warning("Analysis agent crashed: %s", e)
        return STATUS_ERROR

    if result is not None:
        if write_json(config.telemetry_path, [telemetry_record(result)]):
            logger.info("Wrote execution telemetry to %s", config.telemetry_path)
        if result.num_turns >= max_turns:
            logger.warning("Analysis agent hit max_turns=%d", max_turns)

    if not os.path.exists(config.path(ANALYSIS_RESULT_FILE)):
        logger.warning("Analysis agent exited without writing %s", ANALYSIS_RESULT_FILE)
        return STATUS_ERROR
    return STATUS_OK
