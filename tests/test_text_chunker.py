"""Tests for the plain text chunker."""

import pytest

from text_chunker import count_tokens, split_plain_text_lines, split_plain_text_paragraphs


SAMPLE = (
    "Affected Resource: vm-1, Category: Cost, Problem: Underutilized virtual machine\n"
    "\n"
    "Affected Resource: sql-1, Category: Performance, Problem: Missing index on a hot table\n"
    "Affected Resource: kv-1, Category: Security, Problem: Soft delete disabled"
)


class TestCountTokens:
    def test_counts_whitespace_separated_words(self):
        assert count_tokens("one two  three\nfour\tfive") == 5

    def test_empty_text(self):
        assert count_tokens("") == 0
        assert count_tokens("   \n ") == 0


class TestSplitPlainTextLines:
    def test_short_lines_are_kept(self):
        lines = split_plain_text_lines("alpha beta\ngamma", 10)
        assert lines == ["alpha beta", "gamma"]

    def test_long_line_is_split_greedily(self):
        lines = split_plain_text_lines("a b c d e f g", 3)
        assert lines == ["a b c", "d e f", "g"]

    def test_blank_lines_are_dropped(self):
        lines = split_plain_text_lines("first\n\n\nsecond", 5)
        assert lines == ["first", "second"]

    def test_every_line_respects_the_bound(self):
        for bound in (1, 2, 5, 8):
            for line in split_plain_text_lines(SAMPLE, bound):
                assert 1 <= count_tokens(line) <= bound

    def test_words_are_preserved_in_order(self):
        lines = split_plain_text_lines(SAMPLE, 4)
        assert " ".join(lines).split() == SAMPLE.split()

    def test_overlong_word_is_not_split(self):
        word = "x" * 500
        lines = split_plain_text_lines(f"short {word} tail", 1)
        assert lines == ["short", word, "tail"]

    def test_deterministic(self):
        assert split_plain_text_lines(SAMPLE, 3) == split_plain_text_lines(SAMPLE, 3)

    @pytest.mark.parametrize("bound", [0, -1, 2.5])
    def test_invalid_bound(self, bound):
        with pytest.raises(ValueError):
            split_plain_text_lines(SAMPLE, bound)


class TestSplitPlainTextParagraphs:
    def test_lines_are_grouped_up_to_the_bound(self):
        lines = ["a b", "c d", "e f", "g"]
        paragraphs = split_plain_text_paragraphs(lines, 4)
        assert paragraphs == ["a b\nc d", "e f\ng"]

    def test_line_longer_than_bound_is_broken_on_words(self):
        paragraphs = split_plain_text_paragraphs(["a b c d e"], 2)
        assert paragraphs == ["a b", "c d", "e"]

    def test_every_paragraph_respects_the_bound(self):
        lines = split_plain_text_lines(SAMPLE, 5)
        for bound in (5, 7, 12, 100):
            for paragraph in split_plain_text_paragraphs(lines, bound):
                assert count_tokens(paragraph) <= bound

    def test_round_trip_modulo_whitespace(self):
        lines = split_plain_text_lines(SAMPLE, 6)
        paragraphs = split_plain_text_paragraphs(lines, 9)
        assert "\n".join(paragraphs).split() == SAMPLE.split()

    def test_no_lines(self):
        assert split_plain_text_paragraphs([], 10) == []

    def test_paragraph_count_for_uniform_lines(self):
        lines = [" ".join(["w"] * 100) for _ in range(30)]
        paragraphs = split_plain_text_paragraphs(lines, 1024)
        assert len(paragraphs) == 3
        assert [count_tokens(p) for p in paragraphs] == [1000, 1000, 1000]

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            split_plain_text_paragraphs(["a"], 0)
