"""Answer text canonicalization.

All functions here are pure and safe to call from any task.
"""
import re

_WHITESPACE_RE = re.compile(r'\s+')

# Full-width ASCII variants (！ .. ～) sit at a fixed offset from ASCII.
_FULLWIDTH_OFFSET = 0xFEE0
_HALF_WIDTH_TABLE = {cp: cp - _FULLWIDTH_OFFSET for cp in range(0xFF01, 0xFF5F)}

# ァ .. ヶ  <->  ぁ .. ゖ
_KANA_OFFSET = 0x60
_TO_HIRAGANA_TABLE = {cp: cp - _KANA_OFFSET for cp in range(0x30A1, 0x30F7)}
_TO_KATAKANA_TABLE = {cp: cp + _KANA_OFFSET for cp in range(0x3041, 0x3097)}


def to_half_width(text: str) -> str:
    """Convert full-width Latin letters, digits and punctuation to ASCII."""
    return text.translate(_HALF_WIDTH_TABLE)


def to_hiragana(text: str) -> str:
    return text.translate(_TO_HIRAGANA_TABLE)


def to_katakana(text: str) -> str:
    return text.translate(_TO_KATAKANA_TABLE)


def normalize(text: str) -> str:
    """Trim, fold width, collapse whitespace runs and lowercase.

    Kana are left alone; the matcher folds them separately.
    """
    if not text:
        return ""
    normalized = to_half_width(text.strip())
    normalized = _WHITESPACE_RE.sub(' ', normalized)
    return normalized.lower()
