from __future__ import annotations

import pytest

from bookmark_ai.summarizer import ContentUnavailableError, Summarizer, clean_content, split_sentences


def test_takes_at_most_three_sentences():
    content = (
        "First sentence is here. Second sentence is here! "
        "Third sentence is here? Fourth sentence is here."
    )
    summary = Summarizer().summarize(content)
    assert summary == "First sentence is here. Second sentence is here. Third sentence is here."


def test_drops_short_fragments():
    summary = Summarizer().summarize("Hi. Ok. This is a real sentence. Yes.")
    assert summary == "This is a real sentence."


def test_stops_before_exceeding_max_length():
    content = "a" * 300 + ". " + "b" * 300 + "."
    summary = Summarizer().summarize(content)
    assert summary == "a" * 300 + "."


def test_keeps_first_sentence_even_when_longer_than_max():
    summary = Summarizer().summarize("x" * 600 + ".")
    assert summary == "x" * 600 + "."


def test_respects_custom_max_length():
    content = "Alpha sentence number one. Beta sentence number two."
    summary = Summarizer(max_summary_length=30).summarize(content)
    assert summary == "Alpha sentence number one."


def test_falls_back_to_leading_text_when_no_sentences_qualify():
    assert Summarizer().summarize("Short one. Tiny. Nope") == "Short one. Tiny. Nope..."


def test_fallback_is_bounded_to_200_chars_plus_ellipsis():
    summary = Summarizer().summarize("Hi there. " * 40)
    assert summary.endswith("...")
    assert len(summary) == 203
    assert summary.startswith("Hi there. Hi there.")


def test_truncates_content_before_splitting():
    content = "a" * 100 + ". second sentence here."
    summary = Summarizer(max_content_length=50).summarize(content)
    assert summary == "a" * 50 + "."


def test_replaces_other_terminators_with_period():
    assert Summarizer().summarize("Ends with exclamation sentence here!") == "Ends with exclamation sentence here."


def test_empty_content_raises():
    with pytest.raises(ContentUnavailableError) as excinfo:
        Summarizer().summarize("")
    assert excinfo.value.code == "empty_content"


def test_content_that_cleans_to_nothing_raises():
    with pytest.raises(ContentUnavailableError) as excinfo:
        Summarizer().summarize("@@@ ### \n\t ~~~")
    assert excinfo.value.code == "no_content_after_cleaning"


def test_clean_content_collapses_whitespace_and_strips_symbols():
    assert clean_content("a\n\n b\t c") == "a b c"
    assert clean_content("Price: $5 #1 @home (now) - ok;") == "Price: 5 1 home (now) - ok;"


def test_clean_content_strips_non_ascii_letters():
    assert clean_content("Café naïve 日本語 text") == "Caf nave  text"


def test_split_sentences_handles_repeated_terminators():
    assert split_sentences("What is going on?!? Nothing much really...") == [
        "What is going on",
        "Nothing much really",
    ]
