"""Deterministic text metrics for a single spoken answer.

Pure functions only: normalization, sentence/word splitting, filler and
repetition detection, Flesch Reading Ease and a lexicon-based positivity
ratio. Same input always yields the same TranscriptMetrics.
"""

import re
from collections import Counter

from models.schemas.transcript_metrics import TranscriptMetrics

# ---------------------------------------------------------------------------
# Lexicons
# ---------------------------------------------------------------------------
FILLERS: tuple[str, ...] = (
    "uh", "um", "erm", "uhm", "mmm", "hmm", "ah", "er",
    "like", "you know", "i mean", "sort of", "kind of",
    "basically", "actually", "literally", "right", "okay", "ok", "well", "so",
)

POSITIVE_WORDS: frozenset[str] = frozenset({
    "confident", "confidently", "prepared", "ready", "excited", "motivated",
    "enthusiastic", "committed", "strong", "clear", "focused", "passion",
    "passionate", "achieve", "achievement", "improve", "growth", "learn",
    "learning", "opportunity", "grateful", "thankful", "interest", "eager",
    "keen", "reliable", "capable", "responsible", "collaborate", "positive",
    "optimistic", "proactive",
})

# Whole-word match on normalized text (words are single-space separated)
_FILLER_PATTERNS: dict[str, re.Pattern] = {
    f: re.compile(rf"(?<!\S){re.escape(f)}(?!\S)") for f in FILLERS
}

_APOSTROPHE_RE = re.compile(r"[’']")
_NON_WORD_RE = re.compile(r"[^a-z0-9'\s]+")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")

# Flesch Reading Ease coefficients
_FLESCH_BASE = 206.835
_FLESCH_ASL = 1.015
_FLESCH_ASW = 84.6


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_text(text: str) -> str:
    """Lowercase, keep letters/digits/apostrophes, collapse whitespace."""
    text = _APOSTROPHE_RE.sub("'", text.lower())
    text = _NON_WORD_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def split_words(text: str) -> list[str]:
    normalized = normalize_text(text)
    return normalized.split(" ") if normalized else []


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_BOUNDARY_RE.split(text.strip()) if s.strip()]


def count_syllables(word: str) -> int:
    """Vowel-group estimate with silent trailing 'e' removed. 0 for non-words."""
    w = re.sub(r"[^a-z]", "", word.lower())
    if not w:
        return 0
    base = w[:-1] if w.endswith("e") else w
    return max(1, len(_VOWEL_GROUP_RE.findall(base)))


def flesch_reading_ease(text: str) -> float:
    words = split_words(text)
    word_count = len(words) or 1
    sentence_count = max(1, len(split_sentences(text)))
    syllables = sum(count_syllables(w) for w in words)
    asl = word_count / sentence_count
    asw = syllables / word_count
    score = _FLESCH_BASE - _FLESCH_ASL * asl - _FLESCH_ASW * asw
    return max(0.0, min(100.0, score))


def count_fillers(text: str) -> int:
    normalized = normalize_text(text)
    return sum(len(p.findall(normalized)) for p in _FILLER_PATTERNS.values())


def repeated_bigram_rate(words: list[str]) -> float:
    """Share of adjacent word pairs that repeat an earlier pair."""
    if len(words) < 4:
        return 0.0
    bigrams = Counter(zip(words, words[1:]))
    repeats = sum(n - 1 for n in bigrams.values() if n > 1)
    return repeats / (len(words) - 1)


def positivity_ratio(words: list[str]) -> float:
    """Positive-lexicon hits, capped so a handful of words cannot saturate it."""
    if not words:
        return 0.0
    hits = len(POSITIVE_WORDS.intersection(words))
    return min(1.0, hits / max(8.0, len(words) / 50))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_transcript(transcript: str | None) -> TranscriptMetrics:
    """Compute TranscriptMetrics for one answer. Empty input is valid."""
    text = transcript or ""
    words = split_words(text)
    n_words = len(words)
    sentences = split_sentences(text)
    fillers = count_fillers(text)

    return TranscriptMetrics(
        words=n_words,
        unique_words=len(set(words)),
        type_token_ratio=len(set(words)) / n_words if n_words else 0.0,
        sentences=len(sentences) or (1 if n_words else 0),
        avg_sentence_length=n_words / len(sentences) if sentences else float(n_words),
        filler_count=fillers,
        filler_rate=min(1.0, fillers / n_words) if n_words else 0.0,
        repeated_bigram_rate=repeated_bigram_rate(words),
        readability_ease=flesch_reading_ease(text),
        positivity=positivity_ratio(words),
    )


def word_count(text: str | None) -> int:
    return len(split_words(text or ""))
