"""Tests for sentence extraction and speech cleanup."""

from speechstream.speech.segmenter import (
    clean_for_speech,
    ends_with_terminal,
    extract_sentence,
)


class TestExtractSentence:
    def test_splits_first_sentence(self):
        assert extract_sentence("Hello world. More text") == ("Hello world.", "More text")

    def test_no_terminator_returns_buffer_unchanged(self):
        assert extract_sentence("no punctuation yet") == (None, "no punctuation yet")

    def test_question_and_exclamation(self):
        assert extract_sentence("Who did it? The butler!") == ("Who did it?", "The butler!")
        assert extract_sentence("The butler! Surely") == ("The butler!", "Surely")

    def test_sentence_spans_newlines(self):
        sentence, rest = extract_sentence("Line one\ncontinues here.\n\nNext")
        assert sentence == "Line one\ncontinues here."
        assert rest == "Next"

    def test_leading_whitespace_trimmed_from_sentence(self):
        assert extract_sentence("   Padded.  ") == ("Padded.", "")

    def test_empty_buffer(self):
        assert extract_sentence("") == (None, "")


def test_ends_with_terminal():
    assert ends_with_terminal("Done.")
    assert ends_with_terminal("Really?  ")
    assert ends_with_terminal("Stop!\n")
    assert not ends_with_terminal("Half a sent")
    assert not ends_with_terminal("")


class TestCleanForSpeech:
    def test_markup_and_dash_noise(self):
        assert clean_for_speech("**Warning:** check _this_ — now") == "Warning: check this now"

    def test_symbols_removed(self):
        assert clean_for_speech('Use `grep` <here> [1] {x} "quoted" #tag @me 50%') == (
            "Use grep here 1 x quoted tag me 50"
        )

    def test_dash_runs_collapse_to_space(self):
        assert clean_for_speech("before---after") == "before after"
        assert clean_for_speech("range 1–2") == "range 1 2"

    def test_single_hyphen_kept_inside_words(self):
        assert clean_for_speech("well-known suspect") == "well-known suspect"

    def test_list_bullets_removed_per_line(self):
        text = "- first clue\n• second clue\n  · third clue"
        assert clean_for_speech(text) == "first clue second clue third clue"

    def test_whitespace_collapsed(self):
        assert clean_for_speech("  too   many\t\tspaces \n ") == "too many spaces"

    def test_only_noise_becomes_empty(self):
        assert clean_for_speech("*** ### ---") == ""
