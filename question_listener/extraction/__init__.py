"""Question extraction from transcripts."""

from .detector import QuestionDetector, QuestionSpan
from .lexicon import Lexicon, english_lexicon, get_lexicon, japanese_lexicon
from .pipeline import QuestionExtractionPipeline, count_words

__all__ = [
    "Lexicon",
    "QuestionDetector",
    "QuestionExtractionPipeline",
    "QuestionSpan",
    "count_words",
    "english_lexicon",
    "get_lexicon",
    "japanese_lexicon",
]
