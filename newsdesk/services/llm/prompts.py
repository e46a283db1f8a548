from pathlib import Path

from jinja2 import Template

from newsdesk.utils.text import sha256_text

PROMPT_DIR = Path(__file__).resolve().parent / "prompt_templates"

FORMAT_ITEM_PROMPT_VERSION = "format_item_v1"
FREE_TEXT_PROMPT_VERSION = "free_text_v1"

LANGUAGE_NAMES = {
    "te": "Telugu",
    "hi": "Hindi",
    "ta": "Tamil",
    "kn": "Kannada",
    "ml": "Malayalam",
    "mr": "Marathi",
    "bn": "Bengali",
}


def _load_prompt(version: str) -> str:
    path = PROMPT_DIR / f"{version}.txt"
    return path.read_text(encoding="utf-8").strip()


def prompt_for(version: str) -> str:
    return _load_prompt(version)


def prompt_checksum(version: str) -> str:
    return sha256_text(prompt_for(version))


def render_format_item_prompt(language: str) -> str:
    return Template(FORMAT_ITEM_PROMPT).render(language_name=LANGUAGE_NAMES.get(language, language))


def render_free_text_prompt(instruction: str) -> str:
    return Template(FREE_TEXT_PROMPT).render(instruction=instruction.strip())


FORMAT_ITEM_PROMPT = prompt_for(FORMAT_ITEM_PROMPT_VERSION)
FREE_TEXT_PROMPT = prompt_for(FREE_TEXT_PROMPT_VERSION)
