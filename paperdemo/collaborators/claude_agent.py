"""Model collaborators backed by the Claude Agent SDK.

One client serves both model roles of the pipelines:

- ``analyze``: downloads the paper into a scratch directory and lets the
  agent read it with the ``Read`` tool, returning the agent's answer.
- ``generate``: a tool-less call returning the model's text.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
from claude_agent_sdk import (
    query,
    ClaudeAgentOptions,
    AssistantMessage,
    TextBlock,
    ToolUseBlock,
    ResultMessage,
)

from ..config import Settings, get_settings
from ..core.errors import ExtractionError, GenerationError

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = (
    "You are a careful research assistant. You read academic papers and "
    "report their content exactly in the format you are asked for."
)

GENERATION_SYSTEM_PROMPT = (
    "You are an expert at creating interactive visual demonstrations of "
    "academic concepts as standalone HTML pages."
)

DOWNLOAD_TIMEOUT = httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=10.0)


def _truncate(text: str, max_len: int = 100) -> str:
    """Truncate text for logging with ellipsis."""
    if not text:
        return ""
    text = text.replace("\n", " ").strip()
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


class ClaudeAgentClient:
    """Document analyzer and code generator using ``claude_agent_sdk.query``."""

    def __init__(self, settings: Optional[Settings] = None, http_transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._http_transport = http_transport
        self.scratch_dir = Path(self.settings.scratch_dir)
        self.call_count: int = 0
        self.total_cost: float = 0.0

    def _create_options(self, call_type: str, system_prompt: str, cwd: Optional[str] = None) -> ClaudeAgentOptions:
        """Create ClaudeAgentOptions for one call type."""
        agent_options = self.settings.get_agent_options(call_type)
        allowed_tools = agent_options["allowed_tools"]

        return ClaudeAgentOptions(
            model=agent_options["model"],
            system_prompt=system_prompt,
            max_turns=agent_options["max_turns"],
            allowed_tools=allowed_tools if allowed_tools else None,
            cwd=cwd or str(Path.cwd()),
            env={"CLAUDE_CODE_MAX_OUTPUT_TOKENS": str(self.settings.max_output_tokens)},
        )

    async def _stream_response(self, prompt: str, options: ClaudeAgentOptions) -> str:
        """Run one query and return the final text.

        The SDK query runs on its own event loop in a worker thread so it
        does not share the server's loop.
        """
        logger.info(f"[AGENT] Starting query with prompt length: {len(prompt)} chars")

        def run_sync_query() -> str:
            async def _query() -> str:
                start_time = time.time()
                final_result: Optional[str] = None
                accumulated_text: List[str] = []

                async for message in query(prompt=prompt, options=options):
                    elapsed = time.time() - start_time

                    if isinstance(message, AssistantMessage):
                        for block in message.content or []:
                            if isinstance(block, TextBlock):
                                text = getattr(block, "text", "")
                                if text:
                                    accumulated_text.append(text)
                                    logger.debug(f"[{elapsed:6.1f}s] TEXT: {_truncate(text, 80)}")
                            elif isinstance(block, ToolUseBlock):
                                tool_name = getattr(block, "name", "unknown")
                                logger.info(f"[{elapsed:6.1f}s] TOOL: {tool_name}")

                    elif isinstance(message, ResultMessage):
                        if getattr(message, "is_error", False):
                            raise RuntimeError(f"Model call ended with error: {message.subtype}")
                        cost = getattr(message, "total_cost_usd", None)
                        if cost:
                            self.total_cost += cost
                            logger.info(f"[{elapsed:6.1f}s] COMPLETED (cost ${cost:.4f})")
                        if getattr(message, "result", None):
                            final_result = message.result

                if final_result:
                    return final_result
                if accumulated_text:
                    return "\n\n".join(accumulated_text)
                logger.warning("[AGENT] No response captured")
                return ""

            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                return loop.run_until_complete(_query())
            finally:
                loop.close()

        result = await asyncio.to_thread(run_sync_query)
        self.call_count += 1
        logger.info(f"[AGENT] Call {self.call_count} done, total cost ${self.total_cost:.4f}")
        return result

    def get_total_cost(self) -> float:
        """Get total cost in USD across calls."""
        return self.total_cost

    def get_usage_stats(self) -> Dict[str, Any]:
        """Get usage statistics for this client."""
        return {
            "call_count": self.call_count,
            "total_cost_usd": self.total_cost,
        }

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt."""
        options = self._create_options("generation", GENERATION_SYSTEM_PROMPT)
        try:
            return await self._stream_response(prompt, options)
        except Exception as e:
            logger.error(f"[AGENT] Generation call failed: {e}")
            raise GenerationError(f"Model call failed: {e}") from e

    async def analyze(self, file_address: str, instructions: str) -> str:
        """Download a document and ask the model to analyze it."""
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        local_path = self.scratch_dir / f"{uuid4().hex}.pdf"

        try:
            async with httpx.AsyncClient(
                timeout=DOWNLOAD_TIMEOUT,
                transport=self._http_transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(file_address)
                response.raise_for_status()
            await asyncio.to_thread(local_path.write_bytes, response.content)
            logger.info(f"[AGENT] Downloaded {len(response.content)} bytes to {local_path.name}")

            prompt = (
                f"{instructions}\n\n"
                f"The paper is the PDF file at: {local_path.resolve()}\n"
                "Use the Read tool to read it before answering."
            )
            options = self._create_options("analysis", ANALYSIS_SYSTEM_PROMPT, cwd=str(self.scratch_dir))
            return await self._stream_response(prompt, options)

        except httpx.HTTPError as e:
            raise ExtractionError(f"Could not download document: {e}") from e
        except Exception as e:
            logger.error(f"[AGENT] Analysis call failed: {e}")
            raise ExtractionError(f"Analysis call failed: {e}") from e
        finally:
            local_path.unlink(missing_ok=True)

