from dataclasses import dataclass

from newsdesk.core.config import get_settings


@dataclass
class ModelSelection:
    provider: str
    model: str


def stage_candidates(stage: str) -> list[ModelSelection]:
    """Providers to try, in order, for a stage. Empty when nothing is configured."""
    settings = get_settings()
    candidates: list[ModelSelection] = []
    if not settings.llm_enabled:
        return candidates

    if stage == "format_item":
        if settings.gemini_api_key:
            candidates.append(ModelSelection(provider="gemini", model="gemini-2.5-flash"))
        if settings.openai_api_key:
            candidates.append(ModelSelection(provider="openai", model="gpt-4.1-mini"))
        if settings.anthropic_api_key:
            candidates.append(ModelSelection(provider="anthropic", model="claude-3-5-haiku-latest"))
    elif stage == "free_text":
        if settings.gemini_api_key:
            candidates.append(ModelSelection(provider="gemini", model="gemini-2.5-flash"))
        if settings.anthropic_api_key:
            candidates.append(ModelSelection(provider="anthropic", model="claude-sonnet-4-5"))
        if settings.openai_api_key:
            candidates.append(ModelSelection(provider="openai", model="gpt-4.1"))

    return candidates
