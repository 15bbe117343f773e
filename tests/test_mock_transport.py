"""Tests for MockTransport."""

import asyncio

import pytest

from jackd.exceptions import TransportError
from jackd.transport.mock import MockTransport, ScriptedMockTransport


class TestMockTransport:
    """Tests for MockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create a MockTransport instance."""
        return MockTransport()

    @pytest.mark.asyncio
    async def test_open_close(self, transport):
        """Test opening and closing transport."""
        assert not transport.is_open
        await transport.open()
        assert transport.is_open
        await transport.close()
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_double_open_raises(self, transport):
        """Test that opening twice raises error."""
        await transport.open()
        with pytest.raises(TransportError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_write_records_data(self, transport):
        """Test that write records data."""
        await transport.open()
        await transport.write(b"hello")
        await transport.write(b"world")
        assert transport.written_data == [b"hello", b"world"]
        assert transport.last_written == b"world"

    @pytest.mark.asyncio
    async def test_write_when_closed_raises(self, transport):
        """Test that writing to closed transport raises."""
        with pytest.raises(TransportError):
            await transport.write(b"test")

    @pytest.mark.asyncio
    async def test_read_when_closed_raises(self, transport):
        with pytest.raises(TransportError):
            await transport.read()

    @pytest.mark.asyncio
    async def test_read_returns_queued_bytes(self, transport):
        await transport.open()
        transport.add_responses(b"INSERTED 1\r\n", b"DELETED\r\n")
        assert await transport.read() == b"INSERTED 1\r\nDELETED\r\n"

    @pytest.mark.asyncio
    async def test_read_respects_max_bytes(self, transport):
        await transport.open()
        transport.add_response(b"hello world")
        assert await transport.read(5) == b"hello"
        assert await transport.read(6) == b" world"

    @pytest.mark.asyncio
    async def test_chunk_size(self):
        transport = MockTransport(chunk_size=2)
        await transport.open()
        transport.add_response(b"abcde")
        assert [await transport.read() for _ in range(3)] == [b"ab", b"cd", b"e"]

    @pytest.mark.asyncio
    async def test_read_blocks_until_data(self, transport):
        await transport.open()
        reader = asyncio.create_task(transport.read())
        await asyncio.sleep(0)
        assert not reader.done()

        transport.add_response(b"OK")
        assert await reader == b"OK"

    @pytest.mark.asyncio
    async def test_feed_eof_after_data(self, transport):
        await transport.open()
        transport.add_response(b"x")
        transport.feed_eof()
        assert await transport.read() == b"x"
        assert await transport.read() == b""

    @pytest.mark.asyncio
    async def test_close_wakes_reader(self, transport):
        await transport.open()
        reader = asyncio.create_task(transport.read())
        await asyncio.sleep(0)

        await transport.close()
        assert await reader == b""

    @pytest.mark.asyncio
    async def test_clear(self, transport):
        """Test clearing transport state."""
        await transport.open()
        await transport.write(b"test")
        transport.add_response(b"DELETED\r\n")
        transport.clear()
        assert transport.written_data == []
        assert transport.pending_bytes == 0

    @pytest.mark.asyncio
    async def test_response_callback(self, transport):
        """Test dynamic response callback."""
        await transport.open()

        def echo_callback(data: bytes) -> bytes | None:
            return data.upper()

        transport.set_response_callback(echo_callback)
        await transport.write(b"ok\r\n")
        assert await transport.read() == b"OK\r\n"

    @pytest.mark.asyncio
    async def test_write_error(self, transport):
        await transport.open()
        transport.set_write_error(TransportError("reset"))
        with pytest.raises(TransportError):
            await transport.write(b"stats\r\n")
        assert transport.written_data == []

        transport.set_write_error(None)
        await transport.write(b"stats\r\n")
        transport.assert_write_count(1)

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test async context manager protocol."""
        async with MockTransport() as transport:
            assert transport.is_open
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_assert_written(self, transport):
        """Test assert_written helper."""
        await transport.open()
        await transport.write(b"test")
        transport.assert_written(b"test")
        transport.assert_written(b"test", 0)
        with pytest.raises(AssertionError):
            transport.assert_written(b"wrong")

    def test_assert_written_nothing(self, transport):
        with pytest.raises(AssertionError):
            transport.assert_written(b"test")

    @pytest.mark.asyncio
    async def test_assert_write_count(self, transport):
        """Test assert_write_count helper."""
        await transport.open()
        await transport.write(b"a")
        await transport.write(b"b")
        transport.assert_write_count(2)
        with pytest.raises(AssertionError):
            transport.assert_write_count(3)


class TestScriptedMockTransport:
    """Tests for ScriptedMockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create a ScriptedMockTransport instance."""
        return ScriptedMockTransport()

    @pytest.mark.asyncio
    async def test_scripted_responses(self, transport):
        """Test scripted request/response pairs."""
        await transport.open()
        transport.expect(response=b"USING a\r\n", request=b"use a\r\n")
        transport.expect(response=b"WATCHING 2\r\n", request=b"watch a\r\n")

        await transport.write(b"use a\r\n")
        assert await transport.read() == b"USING a\r\n"

        await transport.write(b"watch a\r\n")
        assert await transport.read() == b"WATCHING 2\r\n"
        assert transport.script_complete

    @pytest.mark.asyncio
    async def test_scripted_any_request(self, transport):
        """Test scripted response for any request."""
        await transport.open()
        transport.expect(response=b"DELETED\r\n")

        await transport.write(b"delete 9\r\n")
        assert await transport.read() == b"DELETED\r\n"

    @pytest.mark.asyncio
    async def test_script_mismatch_raises(self, transport):
        await transport.open()
        transport.expect(response=b"DELETED\r\n", request=b"delete 1\r\n")

        with pytest.raises(AssertionError):
            await transport.write(b"delete 2\r\n")

    @pytest.mark.asyncio
    async def test_reset_and_clear_script(self, transport):
        await transport.open()
        transport.expect(response=b"DELETED\r\n")
        await transport.write(b"delete 1\r\n")

        transport.reset_script()
        assert transport.pending_bytes == 0
        assert not transport.script_complete

        transport.clear_script()
        assert transport.script_complete
