"""Ancestor stack: the open-element path during a record traversal."""


class AncestorStack:
    """Tag names of the currently open elements, root first.

    ``pop()`` on an empty stack raises ``IndexError``; a stream that closes
    more elements than it opened is the decoder's bug, not ours.
    """

    def __init__(self):
        self._tags: list[str] = []

    def push(self, tag: str) -> None:
        self._tags.append(tag)

    def pop(self) -> str:
        return self._tags.pop()

    @property
    def top(self) -> str | None:
        """The innermost open element, or None outside any element."""
        return self._tags[-1] if self._tags else None

    @property
    def depth(self) -> int:
        return len(self._tags)

    def path(self) -> tuple[str, ...]:
        return tuple(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __repr__(self) -> str:
        return f"AncestorStack({'/'.join(self._tags)!r})"
