"""Shared fixtures: an in-memory beanstalkd stand-in for MockTransport."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from jackd.transport.mock import MockTransport


@dataclass
class FakeJob:
    id: int
    tube: str
    body: bytes
    priority: int
    state: str = "ready"


class FakeBeanstalkd:
    """
    Minimal single-connection beanstalkd emulation.

    Installed as a MockTransport response callback: every written command is
    interpreted and the matching response bytes are queued. A reserve with no
    ready job stays unanswered, like the real server.
    """

    def __init__(self) -> None:
        self.jobs: dict[int, FakeJob] = {}
        self.next_id = 1
        self.using = "default"
        self.watching = ["default"]
        self.commands: list[str] = []

    def __call__(self, data: bytes) -> bytes | None:
        line, _, rest = data.partition(b"\r\n")
        words = line.decode("ascii").split(" ")
        verb, args = words[0], words[1:]
        self.commands.append(verb)
        handler = getattr(self, "cmd_" + verb.replace("-", "_"), None)
        if handler is None:
            return b"UNKNOWN_COMMAND\r\n"
        return handler(args, rest)

    def _ready(self) -> FakeJob | None:
        ready = [j for j in self.jobs.values() if j.state == "ready" and j.tube in self.watching]
        return min(ready, key=lambda j: (j.priority, j.id), default=None)

    @staticmethod
    def _job_frame(token: str, job: FakeJob) -> bytes:
        return f"{token} {job.id} {len(job.body)}\r\n".encode() + job.body + b"\r\n"

    def cmd_put(self, args, rest):
        priority, _delay, _ttr, length = (int(a) for a in args)
        body = rest[:length]
        if rest[length:] != b"\r\n":
            return b"EXPECTED_CRLF\r\n"
        job = FakeJob(self.next_id, self.using, body, priority)
        self.jobs[job.id] = job
        self.next_id += 1
        return f"INSERTED {job.id}\r\n".encode()

    def cmd_use(self, args, rest):
        self.using = args[0]
        return f"USING {self.using}\r\n".encode()

    def cmd_reserve(self, args, rest):
        job = self._ready()
        if job is None:
            return None
        job.state = "reserved"
        return self._job_frame("RESERVED", job)

    def cmd_reserve_with_timeout(self, args, rest):
        return self.cmd_reserve(args, rest) or b"TIMED_OUT\r\n"

    def cmd_delete(self, args, rest):
        if self.jobs.pop(int(args[0]), None) is None:
            return b"NOT_FOUND\r\n"
        return b"DELETED\r\n"

    def cmd_release(self, args, rest):
        job = self.jobs.get(int(args[0]))
        if job is None or job.state != "reserved":
            return b"NOT_FOUND\r\n"
        job.state = "ready"
        job.priority = int(args[1])
        return b"RELEASED\r\n"

    def cmd_bury(self, args, rest):
        job = self.jobs.get(int(args[0]))
        if job is None or job.state != "reserved":
            return b"NOT_FOUND\r\n"
        job.state = "buried"
        return b"BURIED\r\n"

    def cmd_kick_job(self, args, rest):
        job = self.jobs.get(int(args[0]))
        if job is None or job.state != "buried":
            return b"NOT_FOUND\r\n"
        job.state = "ready"
        return b"KICKED\r\n"

    def cmd_watch(self, args, rest):
        if args[0] not in self.watching:
            self.watching.append(args[0])
        return f"WATCHING {len(self.watching)}\r\n".encode()

    def cmd_ignore(self, args, rest):
        if self.watching == [args[0]]:
            return b"NOT_IGNORED\r\n"
        if args[0] in self.watching:
            self.watching.remove(args[0])
        return f"WATCHING {len(self.watching)}\r\n".encode()

    def cmd_peek(self, args, rest):
        job = self.jobs.get(int(args[0]))
        if job is None:
            return b"NOT_FOUND\r\n"
        return self._job_frame("FOUND", job)

    def _yaml(self, body: str) -> bytes:
        data = body.encode()
        return f"OK {len(data)}\r\n".encode() + data + b"\r\n"

    def cmd_list_tubes_watched(self, args, rest):
        return self._yaml("---\n" + "".join(f"- {t}\n" for t in self.watching))

    def cmd_list_tube_used(self, args, rest):
        return f"USING {self.using}\r\n".encode()

    def cmd_stats_job(self, args, rest):
        job = self.jobs.get(int(args[0]))
        if job is None:
            return b"NOT_FOUND\r\n"
        return self._yaml(
            f"---\nid: {job.id}\ntube: {job.tube}\nstate: {job.state}\npri: {job.priority}\n"
            "age: 0\ndelay: 0\nttr: 60\ntime-left: 0\nfile: 0\nreserves: 0\ntimeouts: 0\n"
            "releases: 0\nburies: 0\nkicks: 0\n"
        )

    def cmd_quit(self, args, rest):
        return None


@pytest.fixture
def mock_transport():
    """Create a MockTransport instance."""
    return MockTransport()


@pytest.fixture
def fake_server(mock_transport):
    """Attach a FakeBeanstalkd to the mock transport."""
    server = FakeBeanstalkd()
    mock_transport.set_response_callback(server)
    return server
