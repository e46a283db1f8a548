import json
from time import perf_counter
from typing import Any

import anthropic as anthropic_sdk
from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from newsdesk.core.config import get_settings
from newsdesk.core.errors import TransformError
from newsdesk.core.observability import LLM_LATENCY
from newsdesk.schemas.common import FormattedFields, FreeTextOutput
from newsdesk.services.llm.prompts import (
    FORMAT_ITEM_PROMPT_VERSION,
    FREE_TEXT_PROMPT_VERSION,
    prompt_checksum,
    render_format_item_prompt,
    render_free_text_prompt,
)
from newsdesk.services.llm.router import ModelSelection, stage_candidates
from newsdesk.utils.text import strip_code_fences


class LLMTransientError(RuntimeError):
    pass


class LLMSchemaError(RuntimeError):
    pass


def _coerce_json(text: str) -> dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise LLMSchemaError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise LLMSchemaError("Response is not a JSON object")
    return parsed


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(LLMTransientError),
    reraise=True,
)
async def _call_gemini(model: str, prompt: str, text: str) -> dict:
    settings = get_settings()
    if not settings.gemini_api_key:
        raise LLMTransientError("Gemini client unavailable")

    client = genai.Client(api_key=settings.gemini_api_key)
    started = perf_counter()
    try:
        result = await client.aio.models.generate_content(
            model=model,
            contents=text,
            config=genai_types.GenerateContentConfig(
                system_instruction=prompt,
                response_mime_type="application/json",
                temperature=0.2,
            ),
        )
    except Exception as exc:  # noqa: BLE001
        raise LLMTransientError(str(exc)) from exc
    latency_ms = int((perf_counter() - started) * 1000)

    parsed = _coerce_json(result.text or "")
    usage = getattr(result, "usage_metadata", None)
    return {
        "provider": "gemini",
        "model": model,
        "raw": parsed,
        "input_tokens": getattr(usage, "prompt_token_count", None),
        "output_tokens": getattr(usage, "candidates_token_count", None),
        "latency_ms": latency_ms,
    }


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(LLMTransientError),
    reraise=True,
)
async def _call_openai(model: str, prompt: str, text: str) -> dict:
    settings = get_settings()
    if not settings.openai_api_key:
        raise LLMTransientError("OpenAI client unavailable")

    client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.llm_timeout_seconds)
    started = perf_counter()
    try:
        result = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            response_format={"type": "json_object"},
            temperature=0.2,
        )
    except Exception as exc:  # noqa: BLE001
        raise LLMTransientError(str(exc)) from exc
    latency_ms = int((perf_counter() - started) * 1000)

    message = result.choices[0].message.content or "{}"
    parsed = _coerce_json(message)
    usage = result.usage
    return {
        "provider": "openai",
        "model": model,
        "raw": parsed,
        "input_tokens": getattr(usage, "prompt_tokens", None),
        "output_tokens": getattr(usage, "completion_tokens", None),
        "latency_ms": latency_ms,
    }


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(LLMTransientError),
    reraise=True,
)
async def _call_anthropic(model: str, prompt: str, text: str) -> dict:
    settings = get_settings()
    if not settings.anthropic_api_key:
        raise LLMTransientError("Anthropic client unavailable")

    client = anthropic_sdk.AsyncAnthropic(
        api_key=settings.anthropic_api_key, timeout=settings.llm_timeout_seconds
    )
    started = perf_counter()
    try:
        result = await client.messages.create(
            model=model,
            max_tokens=1200,
            temperature=0.2,
            system=prompt,
            messages=[{"role": "user", "content": text}],
        )
    except Exception as exc:  # noqa: BLE001
        raise LLMTransientError(str(exc)) from exc
    latency_ms = int((perf_counter() - started) * 1000)

    content = ""
    if result.content:
        text_blocks = [getattr(block, "text", "") for block in result.content]
        content = "\n".join([block for block in text_blocks if block])
    parsed = _coerce_json(content)
    usage = getattr(result, "usage", None)
    return {
        "provider": "anthropic",
        "model": model,
        "raw": parsed,
        "input_tokens": getattr(usage, "input_tokens", None),
        "output_tokens": getattr(usage, "output_tokens", None),
        "latency_ms": latency_ms,
    }


async def _call_candidate(candidate: ModelSelection, prompt: str, text: str) -> dict:
    if candidate.provider == "gemini":
        return await _call_gemini(candidate.model, prompt, text)
    if candidate.provider == "openai":
        return await _call_openai(candidate.model, prompt, text)
    if candidate.provider == "anthropic":
        return await _call_anthropic(candidate.model, prompt, text)
    raise LLMTransientError(f"Unknown provider {candidate.provider}")


async def _run_stage(stage: str, prompt: str, prompt_version: str, text: str, parser):
    candidates = stage_candidates(stage)
    if not candidates:
        raise TransformError(f"No generative provider configured for {stage}")

    errors: list[str] = []
    for candidate in candidates:
        try:
            payload = await _call_candidate(candidate, prompt, text)
            output = parser.model_validate(payload["raw"])
            LLM_LATENCY.labels(stage, payload["provider"], payload["model"]).observe(
                (payload.get("latency_ms") or 0) / 1000
            )
            payload["prompt_version"] = prompt_version
            payload["prompt_checksum"] = prompt_checksum(prompt_version)
            return output, payload
        except (LLMSchemaError, PydanticValidationError) as exc:
            errors.append(f"{candidate.provider}:{candidate.model}:schema:{exc}")
            continue
        except Exception as exc:  # noqa: BLE001
            errors.append(f"{candidate.provider}:{candidate.model}:error:{exc}")
            continue

    raise TransformError(f"No model candidate succeeded for {stage}: {' | '.join(errors)}")


async def run_format_item(text: str) -> tuple[FormattedFields, dict]:
    prompt = render_format_item_prompt(get_settings().localized_language)
    return await _run_stage("format_item", prompt, FORMAT_ITEM_PROMPT_VERSION, text, FormattedFields)


async def run_free_text(text: str, instruction: str) -> tuple[FreeTextOutput, dict]:
    prompt = render_free_text_prompt(instruction)
    return await _run_stage("free_text", prompt, FREE_TEXT_PROMPT_VERSION, text, FreeTextOutput)
