"""Tests for the transcript analyzer."""

import pytest

from services.transcript_analyzer import (
    POSITIVE_WORDS,
    analyze_transcript,
    count_fillers,
    count_syllables,
    flesch_reading_ease,
    normalize_text,
    positivity_ratio,
    repeated_bigram_rate,
    split_sentences,
    split_words,
    word_count,
)


class TestNormalization:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_text("Hello, WORLD!  How are you?") == "hello world how are you"

    def test_keeps_apostrophes(self):
        assert normalize_text("I’m ready") == "i'm ready"

    def test_empty(self):
        assert split_words("") == []
        assert split_words("   ...  ") == []

    def test_split_sentences(self):
        assert split_sentences("First one. Second one! Third?") == ["First one.", "Second one!", "Third?"]


class TestSyllables:
    def test_simple_words(self):
        assert count_syllables("cat") == 1
        assert count_syllables("table") == 1
        assert count_syllables("university") >= 4

    def test_non_word(self):
        assert count_syllables("123") == 0


class TestFillersAndRepetition:
    def test_counts_whole_word_fillers(self):
        assert count_fillers("Um, I, uh, want to study") == 2

    def test_does_not_match_inside_words(self):
        assert count_fillers("umbrella summer") == 0

    def test_multi_word_fillers(self):
        assert count_fillers("you know it is sort of hard") == 2

    def test_repeated_bigrams(self):
        words = "i want to i want to study".split()
        assert repeated_bigram_rate(words) == pytest.approx(2 / 6)

    def test_repeated_bigrams_short_input(self):
        assert repeated_bigram_rate(["a", "b", "a"]) == 0.0


class TestPositivity:
    def test_capped_at_one(self):
        words = sorted(POSITIVE_WORDS)[:10]
        assert positivity_ratio(words) == 1.0

    def test_counts_distinct_hits(self):
        assert positivity_ratio(["confident"] * 20) == pytest.approx(1 / 8)

    def test_few_hits_do_not_saturate(self):
        words = ["i", "am", "confident", "and", "ready"]
        assert positivity_ratio(words) == pytest.approx(2 / 8)

    def test_empty(self):
        assert positivity_ratio([]) == 0.0


class TestAnalyzeTranscript:
    def test_empty_answer(self):
        metrics = analyze_transcript("")
        assert metrics.words == 0
        assert metrics.filler_rate == 0.0
        assert 0.0 <= metrics.readability_ease <= 100.0

    def test_none_answer(self):
        assert analyze_transcript(None).words == 0

    def test_rates_in_unit_interval(self):
        text = "Um um um like like uh. So so so so. Basically, actually, literally."
        metrics = analyze_transcript(text)
        for rate in (
            metrics.type_token_ratio,
            metrics.filler_rate,
            metrics.repeated_bigram_rate,
            metrics.positivity,
        ):
            assert 0.0 <= rate <= 1.0
        assert 0.0 <= metrics.readability_ease <= 100.0

    def test_counts(self, substantive_answer):
        metrics = analyze_transcript(substantive_answer)
        assert metrics.words == word_count(substantive_answer)
        assert metrics.sentences == 1
        assert metrics.avg_sentence_length == pytest.approx(metrics.words)

    def test_deterministic(self, substantive_answer):
        assert analyze_transcript(substantive_answer) == analyze_transcript(substantive_answer)

    def test_readability_clamped(self):
        long_words = "Internationalization institutionalization " * 20
        assert flesch_reading_ease(long_words) == 0.0
