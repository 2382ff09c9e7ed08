"""LLM-assisted invariant suggestions.

Advisory only: suggestions are registered as descriptive entries and never compiled into
executable checks.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

from sui_invariant_monitor.constants import (
    DEFAULT_LLM_MODEL,
    DEFAULT_OLLAMA_URL,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT,
    OPENROUTER_CHAT_URL,
)
from sui_invariant_monitor.errors import ConfigError, LlmError, ParseError
from sui_invariant_monitor.models import AnalysisResult, ModuleMetadata, SuggestedInvariant

_PROMPT_TEMPLATE = """You are a smart contract security expert analyzing a Sui Move module.

Package: {package_id}
Module: {module_name}

Structs:
{struct_info}

Analyze this module and suggest safety invariants to monitor. For each invariant, provide:
1. A unique ID (e.g., INV-101)
2. A descriptive name
3. A clear description of what it checks
4. The formula/condition (using field names from the structs)
5. Severity level (critical/high/medium/low)
6. Which fields are used

Focus on:
- Balance/supply consistency
- Numeric bounds and overflow prevention
- State machine validity
- Access control consistency
- Economic invariants

Respond ONLY with valid JSON in this exact format:
{{
  "suggested_invariants": [
    {{
      "id": "INV-101",
      "name": "Invariant Name",
      "description": "What this invariant checks",
      "formula": "field_a <= field_b",
      "severity": "high",
      "fields_used": ["field_a", "field_b"]
    }}
  ],
  "analysis_notes": "Brief analysis summary"
}}"""


class LlmProvider(Enum):
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


@dataclass(frozen=True)
class LlmConfig:
    provider: LlmProvider = LlmProvider.OLLAMA
    model: str = DEFAULT_LLM_MODEL
    api_key: str | None = None  # OpenRouter only
    base_url: str | None = None  # Ollama only


def build_prompt(metadata: ModuleMetadata) -> str:
    struct_info = ""
    for s in metadata.structs:
        struct_info += f"\nstruct {s.name} {{\n"
        for f in s.fields:
            struct_info += f"  {f.name}: {f.type_},\n"
        struct_info += "}\n"
    return _PROMPT_TEMPLATE.format(
        package_id=metadata.package_id, module_name=metadata.module_name, struct_info=struct_info
    )


def parse_suggestion(entry: Any) -> SuggestedInvariant | None:
    if not isinstance(entry, dict):
        return None
    fields_used = entry.get("fields_used")
    if not isinstance(fields_used, list):
        fields_used = []
    try:
        return SuggestedInvariant(
            id=str(entry["id"]),
            name=str(entry["name"]),
            description=str(entry.get("description", "")),
            formula=str(entry.get("formula", "")),
            severity=str(entry.get("severity", "medium")).lower(),
            fields_used=tuple(str(f) for f in fields_used),
        )
    except KeyError:
        return None


def parse_analysis(content: str, metadata: ModuleMetadata) -> AnalysisResult:
    """
    Parse the model's JSON answer.

    Entries missing an id or name are dropped; a missing list yields no suggestions.
    Raises ParseError if `content` is not a JSON object.
    """
    try:
        analysis = json.loads(content)
    except json.JSONDecodeError as ex:
        raise ParseError(f"Failed to parse LLM JSON: {ex}") from ex
    if not isinstance(analysis, dict):
        raise ParseError("LLM answer is not a JSON object")

    raw = analysis.get("suggested_invariants")
    if not isinstance(raw, list):
        raw = []
    suggestions = tuple(s for s in (parse_suggestion(e) for e in raw) if s is not None)
    return AnalysisResult(
        package_id=metadata.package_id,
        module_name=metadata.module_name,
        suggested_invariants=suggestions,
        analysis_notes=str(analysis.get("analysis_notes") or ""),
    )


class LlmClient:
    """Base class for LLM providers."""

    def __init__(self, model: str, *, session: requests.Session | None = None, timeout: int = LLM_TIMEOUT):
        self.model = model
        self.session = session or requests.Session()
        self.timeout = timeout

    def complete(self, prompt: str) -> str:
        raise NotImplementedError

    def analyze_module(self, metadata: ModuleMetadata) -> AnalysisResult:
        return parse_analysis(self.complete(build_prompt(metadata)), metadata)

    def _post(self, url: str, body: dict[str, Any], headers: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            resp = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as ex:
            raise LlmError(f"{type(self).__name__} request failed: {ex}") from ex
        if not 200 <= resp.status_code < 300:
            raise LlmError(f"{type(self).__name__} error {resp.status_code}: {resp.text}")
        try:
            data = resp.json()
        except ValueError as ex:
            raise ParseError(f"{type(self).__name__}: invalid JSON response") from ex
        if not isinstance(data, dict):
            raise ParseError(f"{type(self).__name__}: unexpected response type")
        return data


class OpenRouterClient(LlmClient):
    def __init__(self, api_key: str, model: str, **kwargs: Any):
        super().__init__(model, **kwargs)
        self.api_key = api_key

    def complete(self, prompt: str) -> str:
        data = self._post(
            OPENROUTER_CHAT_URL,
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": LLM_TEMPERATURE,
                "max_tokens": LLM_MAX_TOKENS,
            },
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "HTTP-Referer": "http://localhost",
                "X-Title": "sui-invariant-monitor",
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as ex:
            raise ParseError("No content in OpenRouter response") from ex
        # Some models return a list of content parts instead of a string.
        if isinstance(content, list):
            return "".join(str(part.get("text", "")) for part in content if isinstance(part, dict))
        if isinstance(content, str):
            return content
        raise ParseError("Invalid content format")


class OllamaClient(LlmClient):
    def __init__(self, model: str, base_url: str | None = None, **kwargs: Any):
        super().__init__(model, **kwargs)
        self.base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")

    def complete(self, prompt: str) -> str:
        data = self._post(
            f"{self.base_url}/api/generate",
            {"model": self.model, "prompt": prompt, "stream": False, "format": "json"},
        )
        content = data.get("response")
        if not isinstance(content, str):
            raise ParseError("No response in Ollama output")
        return content


def create_llm_client(config: LlmConfig) -> LlmClient:
    if config.provider is LlmProvider.OPENROUTER:
        if not config.api_key:
            raise ConfigError("OpenRouter API key required")
        return OpenRouterClient(config.api_key, config.model)
    return OllamaClient(config.model, config.base_url)
