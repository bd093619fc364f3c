"""Character scanner for env documents.

The scanner owns a cursor into an immutable string. The parser asks it for
single characters, fixed-width lookahead and a few line-oriented helpers;
it never tokenizes on its own because the meaning of a character depends on
whether a key or a value is being read.
"""

from typing import Optional

NEWLINE = "\n"
COMMENT = "#"


class Scanner:
    """Cursor over the contents of one document."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        """True once every character has been consumed."""
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        """Look at the character at pos + offset, or "" past the end."""
        idx = self.pos + offset
        if idx < len(self.text):
            return self.text[idx]
        return ""

    def advance(self) -> str:
        """Consume and return the current character."""
        ch = self.peek()
        self.pos += 1
        return ch

    def startswith(self, seq: str) -> bool:
        """Check whether the unconsumed input begins with seq."""
        return self.text.startswith(seq, self.pos)

    def lookahead(self, count: int) -> str:
        """Return up to count unconsumed characters without consuming them."""
        return self.text[self.pos:self.pos + count]

    def skip(self, count: int) -> None:
        self.pos = min(self.pos + count, len(self.text))

    def remaining(self) -> str:
        return self.text[self.pos:]

    def skip_to_line_end(self) -> None:
        """Discard everything up to and including the next newline."""
        idx = self.text.find(NEWLINE, self.pos)
        self.pos = len(self.text) if idx == -1 else idx + 1

    def rest_of_line(self) -> str:
        """Consume the rest of the physical line and return it.

        Collection stops at a newline (consumed, not returned), at a comment
        marker (the comment is discarded through the end of the line) or at
        the end of input.
        """
        start = self.pos
        while not self.at_end():
            ch = self.peek()
            if ch == NEWLINE:
                collected = self.text[start:self.pos]
                self.pos += 1
                return collected
            if ch == COMMENT:
                collected = self.text[start:self.pos]
                self.skip_to_line_end()
                return collected
            self.pos += 1
        return self.text[start:]

    def read_until(self, stop: str) -> Optional[str]:
        """Collect characters up to stop and consume the stop.

        Returns None if stop never appears before the end of input.
        """
        idx = self.text.find(stop, self.pos)
        if idx == -1:
            return None
        collected = self.text[self.pos:idx]
        self.pos = idx + len(stop)
        return collected
