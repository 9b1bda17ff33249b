"""Language-specific lookup tables consumed by the extraction stages.

The matching code never hard-codes words; everything language dependent lives
in a :class:`Lexicon` so the same stages can run against any table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple


@dataclass(frozen=True)
class Lexicon:
    language: str
    question_mark: str
    filler_words: FrozenSet[str]
    # Leading filler/preamble, anchored at the start, including its separator.
    preface: re.Pattern[str]
    connectors: re.Pattern[str]
    # Topic clause followed by a question; such segments are never trimmed.
    topic_question: re.Pattern[str]
    # Interrogative sentence shapes; any match means "looks like a question".
    question_shapes: Tuple[re.Pattern[str], ...]
    question_ending: re.Pattern[str]
    polite_request: re.Pattern[str]
    interrogatives: re.Pattern[str]
    trailing_particles: re.Pattern[str]
    token_separators: re.Pattern[str]
    hint_substrings: Tuple[str, ...]
    streaming_patterns: Tuple[re.Pattern[str], ...]


def _alternation(words: Iterable[str]) -> str:
    ordered = sorted(set(words), key=len, reverse=True)
    return "|".join(re.escape(word) for word in ordered)


JAPANESE_FILLERS = frozenset(
    {
        "えー", "あー", "うー", "んー", "そのー", "あのー", "えーっと", "えーと", "あーと",
        "まあ", "なんか", "ちょっと", "やっぱり", "やっぱ", "だから", "でも",
        "うん", "はい", "そう", "ですね", "ですが", "ただ", "まず", "それで",
        "というか", "てか", "なので", "けど", "けれど", "しかし",
        "ー", "〜", "う〜ん", "え〜", "あ〜", "そ〜", "ん〜",
        "じゃあ", "では", "それでは", "さて", "ちなみに", "ところで", "えっと", "えと",
        "あの", "その", "とりあえず", "まぁ", "まぁその", "なんていうか",
    }
)

JAPANESE_INTERROGATIVES = (
    "どう", "どの", "どこ", "いつ", "なぜ", "なん", "何", "だれ", "誰",
    "どちら", "どれ", "いくら", "いくつ", "どのよう", "どんな",
)

JAPANESE_PREFACE_WORDS = (
    "じゃあ", "では", "それでは", "さて", "ちなみに", "ところで", "えっと", "えと",
    "あの", "その", "とりあえず", "まぁ", "まぁその", "なんていうか", "まず",
    "えー", "あー", "うー", "そのー", "あのー", "えーっと", "えーと",
)

# "あと" followed by a particle is the noun "after" (あとで, あとに), not a connector.
JAPANESE_CONNECTORS = ("それから", "あと(?![でにはのもかがを])", "次に", "つぎに")

JAPANESE_POLITE_REQUESTS = (
    "教えてください", "お聞かせください", "お願いします", "お願いできますか",
    "お願いしてもいいですか", "いただけますか", "頂けますか", "いただけませんか",
    "てもらえますか", "てくれますか", "てください",
)


def japanese_lexicon() -> Lexicon:
    polite = _alternation(JAPANESE_POLITE_REQUESTS)
    return Lexicon(
        language="ja",
        question_mark="？",
        filler_words=JAPANESE_FILLERS,
        preface=re.compile(rf"^(?:{_alternation(JAPANESE_PREFACE_WORDS)})[\s、,]+"),
        connectors=re.compile(rf"(?:^|(?<=[\s、,]))(?:{'|'.join(JAPANESE_CONNECTORS)})"),
        topic_question=re.compile(r"について.*(?:ですか|ますか|でしょうか|か|[?？]$)"),
        question_shapes=tuple(re.compile(re.escape(word)) for word in JAPANESE_INTERROGATIVES)
        + (
            re.compile(r"ですか"),
            re.compile(r"ますか"),
            re.compile(r"でしょうか"),
            re.compile(r"かしら"),
            re.compile(r"のか"),
            re.compile(rf"(?:{polite})[。?？]?$"),
        ),
        question_ending=re.compile(r"(?:ですか|ますか|でしょうか|か)[?？]?$"),
        polite_request=re.compile(rf"(?:{polite})[。?？]?$"),
        interrogatives=re.compile(_alternation(JAPANESE_INTERROGATIVES)),
        trailing_particles=re.compile(r"\s*(?:である|でしょう|です|ます|かな|よね|だ)\s*$"),
        token_separators=re.compile(r"[\s、。！？!?,]+"),
        hint_substrings=(
            "どう", "どの", "どこ", "いつ", "なぜ", "なん", "何", "だれ", "誰",
            "ですか", "ますか", "でしょうか", "か？", "か。",
        ),
        streaming_patterns=(
            re.compile(r"どう(?:です|でしょう|思い|考え).*[か？]"),
            re.compile(r"何(?:が|を|で|に).*[か？]"),
            re.compile(r"いつ.*[か？]"),
            re.compile(r"どこ.*[か？]"),
            re.compile(r"だれ.*[か？]"),
            re.compile(r"なぜ.*[か？]"),
            re.compile(r"(?:です|ます)か[？。]"),
            re.compile(r"でしょうか[？。]"),
        ),
    )


ENGLISH_FILLERS = frozenset({"um", "umm", "uh", "uhh", "er", "erm", "ah", "hmm", "mm"})

ENGLISH_INTERROGATIVES = ("what", "when", "where", "who", "whom", "whose", "why", "how", "which")


def english_lexicon() -> Lexicon:
    wh = "|".join(ENGLISH_INTERROGATIVES)
    polite = r"(?:please|can you tell me|could you tell me|let me know)"
    return Lexicon(
        language="en",
        question_mark="?",
        filler_words=ENGLISH_FILLERS,
        preface=re.compile(
            r"^(?:so|well|okay|ok|alright|anyway|um|umm|uh|uhh|er|erm|hmm)[\s,]+",
            re.IGNORECASE,
        ),
        connectors=re.compile(r"(?:^|[\s,]+)(?:and then|and next)\b|,\s*next\b", re.IGNORECASE),
        topic_question=re.compile(r"^(?:regarding|about|as for)\b.*\?$", re.IGNORECASE),
        question_shapes=(
            re.compile(rf"^(?:{wh})\b", re.IGNORECASE),
            re.compile(
                r"^(?:can|could|would|will|do|does|did|is|are|was|were|should|may|have|has)\s+\w+",
                re.IGNORECASE,
            ),
            re.compile(rf"\b{polite}[.?]?$", re.IGNORECASE),
        ),
        question_ending=re.compile(r"\b(?:right|correct|isn't it|aren't you|don't you)\??$", re.IGNORECASE),
        polite_request=re.compile(rf"\b{polite}[.?]?$", re.IGNORECASE),
        interrogatives=re.compile(rf"\b(?:{wh})\b", re.IGNORECASE),
        trailing_particles=re.compile(r"\s*\bplease\s*$", re.IGNORECASE),
        token_separators=re.compile(r"[\s,.!?]+"),
        hint_substrings=("what ", "when ", "where ", "who ", "why ", "how ", "?"),
        streaming_patterns=(
            re.compile(rf"\b(?:{wh})\b.*\?", re.IGNORECASE),
            re.compile(r"\b(?:can|could|would) you\b.*\?", re.IGNORECASE),
        ),
    )


_BUILDERS = {
    "ja": japanese_lexicon,
    "en": english_lexicon,
}


def get_lexicon(language: str) -> Lexicon:
    """Return the built-in lexicon for ``language`` (``ja`` or ``en``)."""

    try:
        builder = _BUILDERS[language.lower()]
    except KeyError:
        raise ValueError(
            f"No question lexicon for language {language!r}; "
            f"available: {', '.join(sorted(_BUILDERS))}."
        ) from None
    return builder()
