"""Tests for text_normalizer: width/case/whitespace folding and kana conversion."""
import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from text_normalizer import normalize, to_half_width, to_hiragana, to_katakana


class TestNormalize:
    def test_width_and_case_folding(self):
        assert normalize("TOKYO") == "tokyo"
        assert normalize("ＴＯＫＹＯ") == "tokyo"
        assert normalize("TOKYO") == normalize("ＴＯＫＹＯ")

    def test_trims_and_collapses_whitespace(self):
        assert normalize("  new   york  ") == "new york"
        assert normalize("new\t\nyork") == "new york"

    def test_ideographic_space_is_whitespace(self):
        assert normalize("　東京　　都　") == "東京 都"

    def test_fullwidth_digits_and_punctuation(self):
        assert normalize("１２３！？") == "123!?"

    def test_empty_input(self):
        assert normalize("") == ""
        assert normalize("   ") == ""

    def test_kana_untouched(self):
        assert normalize("トウキョウ") == "トウキョウ"

    @pytest.mark.parametrize("text", [
        "ＴＯＫＹＯ  Tower ", "  とうきょう ", "Ｎｅｗ　Ｙｏｒｋ", "", "ÀÉÎ",
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


class TestHalfWidth:
    def test_only_ascii_variants_converted(self):
        assert to_half_width("ＡＢＣ ｶﾀｶﾅ") == "ABC ｶﾀｶﾅ"


class TestKana:
    def test_katakana_to_hiragana(self):
        assert to_hiragana("トウキョウ") == "とうきょう"

    def test_hiragana_to_katakana(self):
        assert to_katakana("とうきょう") == "トウキョウ"

    def test_other_characters_untouched(self):
        assert to_hiragana("東京タワー abc") == "東京たわー abc"
        assert to_katakana("東京たわー abc") == "東京タワー abc"

    def test_round_trip_over_katakana_block(self):
        block = "".join(chr(cp) for cp in range(0x30A1, 0x30F7))
        assert to_katakana(to_hiragana(block)) == block

    def test_round_trip_over_hiragana_block(self):
        block = "".join(chr(cp) for cp in range(0x3041, 0x3097))
        assert to_hiragana(to_katakana(block)) == block
