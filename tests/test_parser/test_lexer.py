"""Tests for the character scanner."""

from envsource.parser import Scanner


class TestScanner:

    def test_peek_and_advance(self):
        s = Scanner("ab")
        assert s.peek() == "a"
        assert s.peek(1) == "b"
        assert s.advance() == "a"
        assert s.advance() == "b"
        assert s.at_end()
        assert s.peek() == ""

    def test_startswith_is_relative_to_cursor(self):
        s = Scanner('x"""')
        assert not s.startswith('"""')
        s.advance()
        assert s.startswith('"""')

    def test_lookahead_is_clamped(self):
        s = Scanner("abc")
        s.skip(1)
        assert s.lookahead(4) == "bc"
        assert s.pos == 1

    def test_rest_of_line_consumes_newline(self):
        s = Scanner("  tail\nnext")
        assert s.rest_of_line() == "  tail"
        assert s.remaining() == "next"

    def test_rest_of_line_stops_at_comment(self):
        s = Scanner(" before # comment\nnext")
        assert s.rest_of_line() == " before "
        assert s.remaining() == "next"

    def test_rest_of_line_at_end_of_input(self):
        s = Scanner("tail")
        assert s.rest_of_line() == "tail"
        assert s.at_end()

    def test_skip_to_line_end(self):
        s = Scanner("comment\nnext")
        s.skip_to_line_end()
        assert s.remaining() == "next"
        s.skip_to_line_end()
        assert s.at_end()

    def test_read_until(self):
        s = Scanner(" NAME }rest")
        assert s.read_until("}") == " NAME "
        assert s.remaining() == "rest"

    def test_read_until_missing_stop(self):
        assert Scanner("NAME").read_until("}") is None
