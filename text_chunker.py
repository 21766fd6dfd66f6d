"""
Plain Text Chunker
Splits free text into size-bounded lines and groups lines into size-bounded paragraphs
so every memory record stays within the embedding model's token limits.

Sizes are measured in tokens, approximated as whitespace-separated words.
Words are never split: a line or paragraph only breaks between words.
"""

from typing import Iterable, List


def count_tokens(text: str) -> int:
    """Approximate token count of a piece of text (number of words)"""
    return len(text.split())


def _check_bound(name: str, value: int) -> None:
    if not isinstance(value, int) or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def _pack_words(words: List[str], max_tokens: int) -> List[str]:
    """Greedily pack words into space-joined groups of at most max_tokens words"""
    packed = []
    current: List[str] = []

    for word in words:
        if current and len(current) + 1 > max_tokens:
            packed.append(" ".join(current))
            current = []
        current.append(word)

    if current:
        packed.append(" ".join(current))

    return packed


def split_plain_text_lines(text: str, max_tokens_per_line: int) -> List[str]:
    """
    Split plain text into lines of at most max_tokens_per_line tokens

    Newlines in the input are hard breaks; blank lines carry no tokens and are dropped.

    Args:
        text: Newline-delimited free text
        max_tokens_per_line: Positive bound on tokens per produced line

    Returns:
        Ordered list of lines
    """
    _check_bound("max_tokens_per_line", max_tokens_per_line)

    lines = []
    for raw_line in text.splitlines():
        lines.extend(_pack_words(raw_line.split(), max_tokens_per_line))
    return lines


def split_plain_text_paragraphs(lines: Iterable[str], max_tokens_per_paragraph: int) -> List[str]:
    """
    Group lines into newline-joined paragraphs of at most max_tokens_per_paragraph tokens

    A line that alone exceeds the bound is broken on word boundaries first.

    Args:
        lines: Ordered lines, usually the output of split_plain_text_lines
        max_tokens_per_paragraph: Positive bound on tokens per produced paragraph

    Returns:
        Ordered list of paragraphs
    """
    _check_bound("max_tokens_per_paragraph", max_tokens_per_paragraph)

    paragraphs = []
    current: List[str] = []
    current_tokens = 0

    for line in lines:
        for piece in _pack_words(line.split(), max_tokens_per_paragraph):
            tokens = count_tokens(piece)
            if current and current_tokens + tokens > max_tokens_per_paragraph:
                paragraphs.append("\n".join(current))
                current = []
                current_tokens = 0
            current.append(piece)
            current_tokens += tokens

    if current:
        paragraphs.append("\n".join(current))

    return paragraphs
