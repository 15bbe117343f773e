"""Tests for command definitions and their response handlers."""

import pytest

from jackd.exceptions import ParseError, ProtocolError, UnexpectedResponseError
from jackd.models.records import Job, RawJob
from jackd.protocol import commands
from jackd.protocol.constants import CommandVerb
from jackd.protocol.execution import PayloadHeader, StepKind


def status(definition, line):
    return definition.steps[0].handler(line)


def payload(definition, data, header):
    return definition.steps[1].handler(data, header)


class TestCommandDefinition:
    """Tests for CommandDefinition."""

    def test_name_is_wire_verb(self):
        assert commands.PAUSE_TUBE.name == "pause-tube"
        assert commands.RESERVE_RAW.verb == CommandVerb.RESERVE

    def test_encode_delegates_to_encoder(self):
        assert commands.DELETE.encode(5) == b"delete 5\r\n"
        assert commands.PUT.encode("hi", ttr=5) == b"put 0 0 5 2\r\nhi\r\n"

    @pytest.mark.parametrize(
        "definition",
        [commands.RESERVE, commands.PEEK, commands.STATS, commands.LIST_TUBES],
    )
    def test_two_step_shape(self, definition):
        assert definition.expects_payload
        assert [step.kind for step in definition.steps] == [StepKind.STATUS, StepKind.PAYLOAD]

    @pytest.mark.parametrize(
        "definition",
        [commands.PUT, commands.DELETE, commands.WATCH, commands.KICK, commands.LIST_TUBE_USED],
    )
    def test_one_step_shape(self, definition):
        assert not definition.expects_payload
        assert len(definition.steps) == 1


class TestStatusHandlers:
    """Tests for status line handlers."""

    def test_put_returns_id(self):
        assert status(commands.PUT, "INSERTED 42") == 42

    @pytest.mark.parametrize(
        "line", ["BURIED 42", "EXPECTED_CRLF", "JOB_TOO_BIG", "DRAINING", "OUT_OF_MEMORY"]
    )
    def test_put_errors(self, line):
        with pytest.raises(ProtocolError) as exc_info:
            status(commands.PUT, line)
        assert str(exc_info.value) == line

    @pytest.mark.parametrize("line", ["INSERTED", "INSERTED x", "INSERTED 1 2", "USING a"])
    def test_put_unexpected(self, line):
        with pytest.raises(UnexpectedResponseError) as exc_info:
            status(commands.PUT, line)
        assert exc_info.value.response == line

    def test_use_returns_tube(self):
        assert status(commands.USE, "USING emails") == "emails"

    def test_delete(self):
        assert status(commands.DELETE, "DELETED") is None
        with pytest.raises(ProtocolError):
            status(commands.DELETE, "NOT_FOUND")
        with pytest.raises(UnexpectedResponseError):
            status(commands.DELETE, "DELETED 1")

    def test_release(self):
        assert status(commands.RELEASE, "RELEASED") is None
        with pytest.raises(ProtocolError):
            status(commands.RELEASE, "BURIED")

    def test_bury_success_token_is_buried(self):
        assert status(commands.BURY, "BURIED") is None

    def test_touch(self):
        assert status(commands.TOUCH, "TOUCHED") is None

    def test_watch_and_ignore_counts(self):
        assert status(commands.WATCH, "WATCHING 2") == 2
        assert status(commands.IGNORE, "WATCHING 1") == 1
        with pytest.raises(ProtocolError):
            status(commands.IGNORE, "NOT_IGNORED")

    def test_not_found_is_unexpected_for_watch(self):
        with pytest.raises(UnexpectedResponseError):
            status(commands.WATCH, "NOT_FOUND")

    def test_pause_tube(self):
        assert status(commands.PAUSE_TUBE, "PAUSED") is None
        with pytest.raises(ProtocolError):
            status(commands.PAUSE_TUBE, "NOT_FOUND")

    def test_kick(self):
        assert status(commands.KICK, "KICKED 3") == 3
        assert status(commands.KICK_JOB, "KICKED") is None
        with pytest.raises(UnexpectedResponseError):
            status(commands.KICK_JOB, "KICKED 3")

    def test_list_tube_used(self):
        assert status(commands.LIST_TUBE_USED, "USING default") == "default"

    def test_reserve_header(self):
        assert status(commands.RESERVE, "RESERVED 7 11") == PayloadHeader(length=11, job_id=7)

    @pytest.mark.parametrize("line", ["TIMED_OUT", "DEADLINE_SOON"])
    def test_reserve_errors(self, line):
        with pytest.raises(ProtocolError):
            status(commands.RESERVE_WITH_TIMEOUT, line)

    def test_reserve_job_not_found(self):
        with pytest.raises(ProtocolError):
            status(commands.RESERVE_JOB, "NOT_FOUND")

    @pytest.mark.parametrize("line", ["RESERVED 7", "RESERVED a 1", "RESERVED 1 -1", "FOUND 1 1"])
    def test_reserve_unexpected(self, line):
        with pytest.raises(UnexpectedResponseError):
            status(commands.RESERVE, line)

    def test_peek_header(self):
        assert status(commands.PEEK_READY, "FOUND 3 0") == PayloadHeader(length=0, job_id=3)
        with pytest.raises(ProtocolError):
            status(commands.PEEK_BURIED, "NOT_FOUND")

    def test_stats_header(self):
        assert status(commands.STATS, "OK 120") == PayloadHeader(length=120)

    def test_stats_job_not_found(self):
        with pytest.raises(ProtocolError):
            status(commands.STATS_JOB, "NOT_FOUND")
        with pytest.raises(ProtocolError):
            status(commands.STATS_TUBE, "NOT_FOUND")


class TestPayloadHandlers:
    """Tests for payload handlers."""

    def test_text_job(self):
        job = payload(commands.RESERVE, b"hello", PayloadHeader(length=5, job_id=7))
        assert job == Job(id=7, payload="hello")

    def test_text_job_invalid_utf8(self):
        with pytest.raises(ParseError) as exc_info:
            payload(commands.PEEK, b"\xff\xfe", PayloadHeader(length=2, job_id=9))
        assert exc_info.value.record_type == "job"

    def test_raw_job(self):
        job = payload(commands.RESERVE_RAW, b"\xff\xfe", PayloadHeader(length=2, job_id=9))
        assert job == RawJob(id=9, payload=b"\xff\xfe")

    @pytest.mark.parametrize("definition", [commands.RESERVE, commands.RESERVE_RAW])
    def test_job_id_zero_is_unexpected(self, definition):
        with pytest.raises(UnexpectedResponseError):
            payload(definition, b"hello", PayloadHeader(length=5, job_id=0))

    def test_tube_list(self):
        tubes = payload(commands.LIST_TUBES_WATCHED, b"---\n- default\n- a\n", PayloadHeader(19))
        assert tubes == ["default", "a"]

    def test_tube_list_keeps_names_verbatim(self):
        body = b"---\n- 010\n- null\n- yes\n"
        tubes = payload(commands.LIST_TUBES, body, PayloadHeader(len(body)))
        assert tubes == ["010", "null", "yes"]

    def test_stats(self):
        stats = payload(commands.STATS, b"---\ncurrent-jobs-ready: 4\n", PayloadHeader(27))
        assert stats.current_jobs_ready == 4
