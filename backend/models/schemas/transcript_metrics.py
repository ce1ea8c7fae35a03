"""Text metrics derived from a single spoken answer."""

from models.base import CamelModel


class TranscriptMetrics(CamelModel):
    """Output of the transcript analyzer.

    Rates are in [0, 1]; readability_ease is Flesch Reading Ease clamped
    to [0, 100].
    """
    words: int = 0
    unique_words: int = 0
    type_token_ratio: float = 0.0  # unique_words / words
    sentences: int = 0
    avg_sentence_length: float = 0.0
    filler_count: int = 0
    filler_rate: float = 0.0  # filler_count / words
    repeated_bigram_rate: float = 0.0
    readability_ease: float = 0.0
    positivity: float = 0.0
