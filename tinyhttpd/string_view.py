"""A mutable view over a string, consumed from either end."""

from __future__ import annotations


def _check_delim(delim: str) -> None:
    if len(delim) != 1:
        raise ValueError("delimiter must be a single character")


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValueError("amount must not be negative")


class StringView:
    """Text that shrinks as pieces are split or trimmed off it."""

    __slots__ = ("_text",)

    def __init__(self, text: str) -> None:
        self._text = text

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"StringView({self._text!r})"

    def __len__(self) -> int:
        return len(self._text)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StringView):
            return self._text == other._text
        if isinstance(other, str):
            return self._text == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def remove_from_left(self, amount: int) -> None:
        """Drop up to ``amount`` characters from the start."""
        _check_amount(amount)
        self._text = self._text[amount:]

    def remove_from_right(self, amount: int) -> None:
        """Drop up to ``amount`` characters from the end."""
        _check_amount(amount)
        self._text = self._text[: max(len(self._text) - amount, 0)]

    def trim_left(self, delim: str) -> None:
        """Drop leading runs of ``delim``."""
        _check_delim(delim)
        self._text = self._text.lstrip(delim)

    def trim_right(self, delim: str) -> None:
        """Drop trailing runs of ``delim``."""
        _check_delim(delim)
        self._text = self._text.rstrip(delim)

    def trim(self, delim: str) -> None:
        """Drop ``delim`` from both ends."""
        self.trim_left(delim)
        self.trim_right(delim)

    def split(self, delim: str) -> StringView:
        """Return the text before the first ``delim`` and keep what follows it.

        Without a delimiter the whole text is returned and the view is left
        empty.
        """
        _check_delim(delim)
        head, _, self._text = self._text.partition(delim)
        return StringView(head)