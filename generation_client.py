"""Text generation backends.

One capability, `generate(prompt, system_instruction)`, behind a small closed
set of backends selected by the `llmSource` setting:

- Cloud Gemini: google-genai, with Google Search grounding for trend scans
- Local LLM / Custom API: any OpenAI-compatible chat completions endpoint
- Claude CLI: the `claude` binary in print mode

`GenerationClient` wraps the backends for the bot and never raises; callers
get a `GenerationResult` that is either ok or carries the error text.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar

import httpx
from google import genai
from google.genai import errors, types

import assistant_prompt
from integrations import config
from integrations.settings import (
    LLM_CLAUDE_CLI,
    LLM_CLOUD_GEMINI,
    AppSettings,
)
from integrations.trends import TrendCategory, TrendItem, parse_trends

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationError(RuntimeError):
    """The generation backend failed or returned nothing usable."""


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GeminiBackend:
    """Google Gemini through the google-genai SDK."""

    def __init__(self, api_key: str = config.GEMINI_API_KEY, model: str = config.GEMINI_MODEL):
        self.api_key = api_key
        self.model = model

    async def generate(self, prompt: str, system_instruction: Optional[str] = None, use_search: bool = False) -> str:
        if not self.api_key:
            raise GenerationError("API key is missing. Set API_KEY in the environment.")

        cfg = types.GenerateContentConfig(
            system_instruction=system_instruction,
            tools=[types.Tool(google_search=types.GoogleSearch())] if use_search else None,
        )
        try:
            client = genai.Client(api_key=self.api_key)
            response = await client.aio.models.generate_content(model=self.model, contents=prompt, config=cfg)
        except errors.APIError as e:
            raise GenerationError(f"Gemini API error: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationError(f"Gemini unreachable: {e}") from e

        text = (response.text or "").strip()
        if not text:
            raise GenerationError("Empty model response")
        return text


class OpenAICompatibleBackend:
    """Local or hosted endpoint speaking the chat completions protocol."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        model: str = config.CUSTOM_API_MODEL,
        timeout: float = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    async def generate(self, prompt: str, system_instruction: Optional[str] = None, use_search: bool = False) -> str:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})
        body = {"model": self.model, "messages": messages, "stream": False}
        headers = {"Authorization": f"Bearer {self.api_key or 'dummy-key'}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationError(f"Custom API error: {e}") from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected custom API response: {str(data)[:200]}") from e
        if not text or not text.strip():
            raise GenerationError("Empty model response")
        return text.strip()


class ClaudeCliBackend:
    """Claude Code CLI in print mode."""

    def __init__(self, workspace: Path = config.WORKSPACE, timeout: int = 120, claude_path: str = "claude"):
        self.workspace = Path(workspace)
        self.timeout = timeout
        self.claude_path = claude_path

    async def generate(self, prompt: str, system_instruction: Optional[str] = None, use_search: bool = False) -> str:
        cmd = [
            self.claude_path,
            "--print",
            "--verbose",
            "--output-format", "stream-json",
        ]
        if system_instruction:
            cmd.extend(["--system-prompt", system_instruction])
        cmd.append(prompt)

        logger.info(f"Running claude command: {' '.join(cmd[:4])}...")
        self.workspace.mkdir(parents=True, exist_ok=True)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.workspace),
            )
        except OSError as e:
            raise GenerationError(f"Could not start claude: {e}") from e

        try:
            stdout_data, stderr_data = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise GenerationError("Claude request timed out") from e

        if stderr_data:
            logger.error(f"Claude stderr: {stderr_data.decode()[:500]}")

        result = ""
        # Parse streaming JSON output line by line
        for line in stdout_data.decode().splitlines():
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"JSON decode error: {e}, line: {line[:100]}")
                continue
            if data.get("type") == "result":
                result = data.get("result", "")

        if not result.strip():
            raise GenerationError("No response received from claude")
        return result.strip()


def backend_for(settings: AppSettings) -> Any:
    """Pick the backend for the configured llmSource."""
    if settings.llm_source == LLM_CLOUD_GEMINI:
        return GeminiBackend()
    if settings.llm_source == LLM_CLAUDE_CLI:
        return ClaudeCliBackend()
    return OpenAICompatibleBackend(settings.custom_api_url, settings.custom_api_key)


def is_configured(settings: AppSettings) -> bool:
    if settings.llm_source == LLM_CLOUD_GEMINI:
        return bool(config.GEMINI_API_KEY)
    if settings.llm_source == LLM_CLAUDE_CLI:
        return True
    return bool(settings.custom_api_url)


class GenerationClient:
    """Bot-facing generation operations that report failures as values."""

    def __init__(self, backend_factory=backend_for):
        self.backend_factory = backend_factory

    async def generate(self, settings: AppSettings, prompt: str, system_instruction: Optional[str] = None) -> GenerationResult[str]:
        try:
            backend = self.backend_factory(settings)
            return GenerationResult(value=await backend.generate(prompt, system_instruction))
        except GenerationError as e:
            logger.error(f"Generation failed: {e}")
            return GenerationResult(error=str(e))

    async def generate_idea(self, settings: AppSettings) -> GenerationResult[str]:
        prompt = assistant_prompt.IDEA_PROMPT.format(language=settings.target_language)
        return await self.generate(settings, prompt, assistant_prompt.IDEA_SYSTEM_INSTRUCTION)

    async def scan_trends(self, settings: AppSettings, category: TrendCategory) -> GenerationResult[list[TrendItem]]:
        system_instruction, prompt = assistant_prompt.get_trend_prompt(category)
        try:
            backend = self.backend_factory(settings)
            text = await backend.generate(prompt, system_instruction, use_search=True)
        except GenerationError as e:
            logger.error(f"Trend scan failed ({category.value}): {e}")
            return GenerationResult(error=str(e))

        trends = parse_trends(text, category)
        logger.info(f"Trend scan ({category.value}) returned {len(trends)} item(s)")
        return GenerationResult(value=trends)
