"""Concurrency tests for the shared control channel.

The keep-alive probe and foreground commands run on different threads
against one control connection. The server side checks that no bytes
of a second exchange arrive while a first one is still open.
"""

import socket
import threading
import time

import pytest

from ftpshell.ftp import commands
from ftpshell.ftp.connection import ConnectionState
from ftpshell.ftp.exceptions import FTPConnectionClosedError
from ftpshell.ftp.keepalive import KeepAliveConfig, KeepAliveLoop
from ftpshell.ftp.session import Session

from .scripted_server import TEST_TIMEOUT


def checked_reply(text: str, violations: list, delay: float = 0.0):
    """Reply handler that records any command pipelined behind the current one."""
    def handle(server, line):
        if delay:
            time.sleep(delay)
        if server.has_pending_input():
            violations.append(line)
        server.send(text)
    return handle


class TestControlChannelSharing:
    """Tests that probe and foreground exchanges never interleave."""

    def test_probe_and_commands_at_the_same_instant(self, scripted_server, make_session, output):
        """Test many simultaneous probes and commands each get their own reply."""
        violations = []
        scripted_server.on("PWD", checked_reply('257 "/" is the current directory', violations))
        scripted_server.on("NOOP", checked_reply("200 NOOP ok", violations))
        session = make_session(authenticated=True)
        probes = []
        loop = KeepAliveLoop(session.channel, on_probe=probes.append)
        start = threading.Barrier(2)

        def probe_repeatedly():
            start.wait()
            for _ in range(50):
                loop.tick()

        prober = threading.Thread(target=probe_repeatedly, daemon=True)
        prober.start()
        start.wait()
        for _ in range(50):
            commands.handle_pwd(session, [])
        prober.join(TEST_TIMEOUT)

        assert violations == []
        assert output == ['257 "/" is the current directory'] * 50
        assert all(probe.code == 200 for probe in probes)
        assert scripted_server.received.count("PWD") == 50
        assert scripted_server.received.count("NOOP") == len(probes)
        assert not loop.connection_lost.is_set()

    def test_command_waits_for_probe_in_flight(self, scripted_server, make_session, output):
        """Test a command issued during a slow probe runs after it."""
        violations = []
        scripted_server.on("NOOP", checked_reply("200 NOOP ok", violations, delay=0.3))
        scripted_server.on("PWD", checked_reply('257 "/"', violations))
        session = make_session(authenticated=True)
        probes = []
        loop = KeepAliveLoop(session.channel, on_probe=probes.append)

        prober = threading.Thread(target=loop.tick, daemon=True)
        prober.start()
        deadline = time.monotonic() + TEST_TIMEOUT
        while "NOOP" not in scripted_server.received and time.monotonic() < deadline:
            time.sleep(0.01)

        commands.handle_pwd(session, [])
        prober.join(TEST_TIMEOUT)

        assert scripted_server.received == ["NOOP", "PWD"]
        assert violations == []
        assert [probe.code for probe in probes] == [200]
        assert output == ['257 "/"']

    def test_probe_skipped_during_transfer(self, scripted_server, make_session, tmp_path, monkeypatch):
        """Test a probe fired mid-transfer sends nothing until the transfer closes."""
        monkeypatch.chdir(tmp_path)
        violations = []
        in_transfer = threading.Event()
        proceed = threading.Event()

        def retr(server, line):
            server.send("150 Opening BINARY mode data connection")
            conn = server.data.accept()
            in_transfer.set()
            proceed.wait(TEST_TIMEOUT)
            if server.has_pending_input(wait=0.2):
                violations.append("control bytes during data transfer")
            conn.sendall(b"payload")
            conn.close()
            if server.has_pending_input(wait=0.1):
                violations.append("control bytes before closing status")
            server.send("226 Transfer complete")

        listener = scripted_server.open_data()
        scripted_server.on("SIZE", "213 7").on("RETR", retr).on("NOOP", "200 NOOP ok")
        session = make_session(authenticated=True)
        session.data_address = f"127.0.0.1:{listener.port}"
        loop = KeepAliveLoop(session.channel)
        results = []

        foreground = threading.Thread(
            target=lambda: results.append(commands.handle_retr(session, ["file.bin"])),
            daemon=True,
        )
        foreground.start()
        assert in_transfer.wait(TEST_TIMEOUT)

        loop.tick()
        proceed.set()
        foreground.join(TEST_TIMEOUT)

        assert violations == []
        assert results[0].bytes_transferred == 7
        assert scripted_server.received == ["SIZE file.bin", "RETR file.bin"]

        loop.tick()
        assert scripted_server.received == ["SIZE file.bin", "RETR file.bin", "NOOP"]
        assert loop.consecutive_successes == 1

    def test_login_holds_channel_between_user_and_pass(self, scripted_server, make_session):
        """Test another thread cannot take the channel between USER and PASS."""
        scripted_server.on("USER", "331 Need password").on("PASS", "230 Logged in")
        session = make_session()
        attempts = []

        def try_from_other_thread(line):
            def attempt():
                taken = session.channel.try_acquire()
                if taken:
                    session.channel.release()
                attempts.append((line, taken))

            thread = threading.Thread(target=attempt)
            thread.start()
            thread.join(TEST_TIMEOUT)

        session.output = try_from_other_thread
        commands.handle_auth(session, [])
        session.stop_keepalive()

        assert attempts == [("331 Need password", False), ("230 Logged in", False)]
        assert scripted_server.received == ["USER testuser", "PASS testpass"]


class TestForegroundTransportFailure:
    """Tests that a failed foreground exchange is seen by the keep-alive."""

    def test_timeout_then_tick_signals_connection_lost(self, scripted_server, ftp_config):
        """Test a foreground read timeout makes the next tick report the loss."""
        scripted_server.on("PWD", lambda server, line: None)
        scripted_server.start()
        channel = scripted_server.channel(read_timeout=1)
        channel.read_response()
        session = Session(
            channel,
            ftp_config.username,
            ftp_config.password,
            keepalive_config=KeepAliveConfig(interval=60, extended_interval=120),
        )
        session.is_authenticated = True
        lost = []
        loop = KeepAliveLoop(channel, on_connection_lost=lost.append)

        try:
            with pytest.raises(socket.timeout):
                commands.handle_pwd(session, [])
            assert channel.state == ConnectionState.BROKEN

            loop.tick()

            assert loop.connection_lost.is_set()
            assert len(lost) == 1
            assert isinstance(lost[0], FTPConnectionClosedError)
            assert scripted_server.received == ["PWD"]
        finally:
            session.close()
