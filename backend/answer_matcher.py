from typing import Dict, List, Optional

from pydantic import BaseModel

from text_normalizer import normalize, to_hiragana


class MatchResult(BaseModel):
    is_correct: bool
    normalized_input: str
    matched_canonical: Optional[str] = None


def _fold(text: str) -> str:
    return to_hiragana(normalize(text))


def match(raw_input: str, canonical_answers: List[str],
          variations: Dict[str, List[str]]) -> MatchResult:
    """Judge a raw answer against the canonical list, then the variations.

    Exact hits on any canonical answer win over variation hits, and ties
    are always broken by canonical-list order.
    """
    normalized_input = normalize(raw_input or "")
    if not normalized_input or not canonical_answers:
        return MatchResult(is_correct=False, normalized_input=normalized_input)

    folded = to_hiragana(normalized_input)

    for canonical in canonical_answers:
        if _fold(canonical) == folded:
            return MatchResult(is_correct=True, normalized_input=normalized_input,
                               matched_canonical=canonical)

    for canonical in canonical_answers:
        for variation in variations.get(canonical) or []:
            if _fold(variation) == folded:
                return MatchResult(is_correct=True, normalized_input=normalized_input,
                                   matched_canonical=canonical)

    return MatchResult(is_correct=False, normalized_input=normalized_input)
