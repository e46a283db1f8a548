import asyncio

from helpers import echo_format_item, echo_free_text, failing_format_item, failing_free_text
from newsdesk.services.transformer import FREE_TEXT_ERROR_TITLE, Transformer, fallback_fields


def test_format_item_passes_provider_output_through():
    result = asyncio.run(Transformer(format_item_fn=echo_format_item).format_item("Rain Alert"))
    assert not result.degraded
    assert result.fields.slug == "rain-alert"
    assert result.provider == "fake"


def test_format_item_falls_back_when_provider_fails():
    text = "Heavy rain expected across the coastal districts through the weekend, officials said."
    result = asyncio.run(Transformer(format_item_fn=failing_format_item).format_item(text))

    assert result.degraded
    assert "provider unavailable" in result.error
    assert result.fields.title == text[:60].strip()
    assert result.fields.summary == text
    assert result.fields.tags == ["news"]
    assert result.fields.localized_tags == ["వార్తలు"]
    assert result.fields.localized_slug.startswith("fallback-te-")


def test_format_item_is_total_for_empty_input():
    result = asyncio.run(Transformer(format_item_fn=failing_format_item).format_item(""))
    assert result.degraded
    assert result.fields.title == "Untitled post"
    assert result.fields.slug.startswith("untitled-post-")


def test_format_item_falls_back_on_schema_mismatch():
    async def bad_shape(text):
        return {"title": "only a title"}, {}

    result = asyncio.run(Transformer(format_item_fn=bad_shape).format_item("body"))
    assert result.degraded


def test_fallback_slug_is_ascii_even_for_non_latin_text():
    fields = fallback_fields("తెలుగు వార్త")
    assert fields.slug.startswith("post-")


def test_free_text_success():
    result = asyncio.run(Transformer(free_text_fn=echo_free_text).format_free_text("Body text", "Summarize"))
    assert not result.degraded
    assert result.as_dict() == {"title": "Summarize: Body text", "summary": "Body text"}


def test_free_text_failure_is_reported_not_raised():
    result = asyncio.run(Transformer(free_text_fn=failing_free_text).format_free_text("x", "y"))
    assert result.degraded
    assert result.title == FREE_TEXT_ERROR_TITLE
    assert "provider unavailable" in result.summary
