"""Unit tests for the newline-delimited JSON line buffer."""

import json

from mcp_orchestrator.infrastructure.mcp.line_buffer import LineBuffer


class TestLineBufferFeed:
    def test_message_split_across_chunks_is_joined(self):
        buffer = LineBuffer("s")
        data = json.dumps({"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}) + "\n"

        assert buffer.feed(data[:10]) == []
        assert buffer.pending == data[:10]
        assert buffer.feed(data[10:]) == [{"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}]
        assert buffer.pending == ""

    def test_several_messages_in_one_chunk(self):
        buffer = LineBuffer("s")
        data = '{"id": 1, "result": 1}\n\n{"id": 2, "result": 2}\n{"id": 3'

        messages = buffer.feed(data)

        assert [m["id"] for m in messages] == [1, 2]
        assert buffer.pending == '{"id": 3'

    def test_pretty_printed_message_is_recovered(self):
        buffer = LineBuffer("s")
        data = json.dumps({"id": 7, "result": {"ok": True}}, indent=1) + "\n"

        assert buffer.feed(data) == [{"id": 7, "result": {"ok": True}}]
        assert buffer.discarded_lines == 0

    def test_stale_fragment_is_dropped_for_complete_line(self):
        buffer = LineBuffer("s")

        messages = buffer.feed('garbage line\n{"id": 1, "result": null}\n')

        assert messages == [{"id": 1, "result": None}]
        assert buffer.discarded_lines == 1

    def test_fragment_growth_is_bounded(self):
        buffer = LineBuffer("s", max_fragment_lines=3)

        assert buffer.feed("a\nb\nc\nd\n") == []

        assert buffer.discarded_lines == 3
        assert buffer.pending == "d"

    def test_pending_joins_fragment_and_partial_line(self):
        buffer = LineBuffer("s")

        buffer.feed('{"id":\n  2')

        assert buffer.pending == '{"id":\n  2'

    def test_scalar_lines_are_not_messages(self):
        buffer = LineBuffer("s", max_fragment_lines=1)
        assert buffer.feed("42\n") == []

    def test_clear_drops_partial_state(self):
        buffer = LineBuffer("s")
        buffer.feed('{"id": 1')
        buffer.clear()
        assert buffer.pending == ""
