import pytest
from pydantic import ValidationError

from newsdesk.schemas.common import (
    ContentRecordPatch,
    FormattedFields,
    FreeTextRequest,
    IngestByIdsRequest,
    UpstreamTweet,
)


def test_formatted_fields_accepts_language_suffixed_aliases():
    out = FormattedFields.model_validate(
        {
            "title": " Budget passed ",
            "summary": "The assembly passed the budget.",
            "slug": "Budget Passed Today!",
            "tags": "politics, budget",
            "slug_te": "బడ్జెట్ ఆమోదం",
            "tags_te": ["రాజకీయాలు"],
        }
    )
    assert out.title == "Budget passed"
    assert out.slug == "budget-passed-today"
    assert out.tags == ["politics", "budget"]
    assert out.localized_slug == "బడ్జెట్-ఆమోదం"
    assert out.localized_tags == ["రాజకీయాలు"]


def test_formatted_fields_rejects_slug_without_latin_characters():
    with pytest.raises(ValidationError):
        FormattedFields(
            title="x",
            summary="x",
            slug="వార్తలు",
            tags=["a"],
            localized_slug="x",
            localized_tags=["b"],
        )


def test_formatted_fields_rejects_blank_tags():
    with pytest.raises(ValidationError):
        FormattedFields(
            title="x",
            summary="x",
            slug="x",
            tags=[" ", ""],
            localized_slug="x",
            localized_tags=["b"],
        )


def test_ingest_request_splits_comma_string():
    assert IngestByIdsRequest(tweet_ids="1, 2,3").tweet_ids == ["1", "2", "3"]


def test_ingest_request_rejects_empty_and_blank_ids():
    with pytest.raises(ValidationError):
        IngestByIdsRequest(tweet_ids=[])
    with pytest.raises(ValidationError):
        IngestByIdsRequest(tweet_ids=["1", "  "])


def test_free_text_request_requires_both_fields():
    with pytest.raises(ValidationError):
        FreeTextRequest(text="", instruction="Summarize")
    with pytest.raises(ValidationError):
        FreeTextRequest(text="body", instruction="")


def test_upstream_tweet_coerces_numeric_id():
    tweet = UpstreamTweet.model_validate({"id": 1790000000000000001, "text": None})
    assert tweet.id == "1790000000000000001"
    assert tweet.text == ""


def test_patch_ignores_unknown_keys():
    patch = ContentRecordPatch.model_validate({"_id": "abc", "title": "New"})
    assert patch.model_dump(exclude_unset=True) == {"title": "New"}


def test_patch_slug_is_normalized_like_generated_slugs():
    assert ContentRecordPatch(slug="Monsoon Update 2025").slug == "monsoon-update-2025"
    with pytest.raises(ValidationError):
        ContentRecordPatch(slug="తెలుగు వార్త")
