"""
Transfer engine tests.

The subprocess boundary is replaced by a scripted runner so the retry and
resume budget, transport selection and cookie-file lifecycle can be checked
without a real downloader.
"""

import os
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from xcodecache.download.transfer import (
    HostTransports,
    TransferEngine,
    TransferExit,
    TransportKind,
    build_command,
    cookie_file,
    detect_transports,
    run_command,
    select_transport,
)
from xcodecache.exceptions import TransportUnavailableError

URL = "https://developer.apple.com/devcenter/download.action?path=/a/Xcode.xip"


class ScriptedRunner:
    """Returns queued exit codes and records every command it was given."""

    def __init__(self, *exit_codes, cookie_path=None):
        self.exit_codes = list(exit_codes)
        self.commands = []
        self.cookie_seen = []
        self.cookie_path = cookie_path

    def __call__(self, command, on_line):
        self.commands.append(command)
        if self.cookie_path is not None:
            path = Path(self.cookie_path)
            self.cookie_seen.append(path.read_text() if path.exists() else None)
        on_line(f"progress {len(self.commands)}")
        return self.exit_codes.pop(0)


@pytest.fixture
def cookie_path(tmp_path):
    return tmp_path / "cookies.txt"


def _engine(transports, runner, cookie_path, **kwargs):
    return TransferEngine(
        transports,
        cookie_path=cookie_path,
        runner=runner,
        on_line=lambda _line: None,
        **kwargs,
    )


class TestTransportSelection:
    def test_cookie_requires_cookie_capable(self, both_transports):
        assert select_transport(True, both_transports) is TransportKind.COOKIE_CAPABLE

    def test_cookie_without_curl_is_configuration_error(self):
        with pytest.raises(TransportUnavailableError):
            select_transport(True, HostTransports(plain="/usr/bin/aria2c"))

    def test_anonymous_prefers_plain(self, both_transports):
        assert select_transport(False, both_transports) is TransportKind.PLAIN

    def test_anonymous_falls_back_to_cookie_capable(self):
        transports = HostTransports(cookie_capable="/usr/bin/curl")
        assert select_transport(False, transports) is TransportKind.COOKIE_CAPABLE

    def test_discard_sink_requires_cookie_capable(self, both_transports):
        assert (
            select_transport(False, both_transports, os.devnull)
            is TransportKind.COOKIE_CAPABLE
        )
        assert select_transport(False, both_transports, "/tmp/a.dmg") is TransportKind.PLAIN

    def test_discard_sink_without_curl(self):
        with pytest.raises(TransportUnavailableError):
            select_transport(False, HostTransports(plain="/usr/bin/aria2c"), os.devnull)

    def test_nothing_installed(self):
        with pytest.raises(TransportUnavailableError):
            select_transport(False, HostTransports())

    def test_detect_uses_which(self):
        found = {"curl": "/opt/bin/curl"}
        transports = detect_transports(which=found.get)
        assert transports == HostTransports(cookie_capable="/opt/bin/curl", plain=None)


class TestExitCodes:
    @pytest.mark.parametrize(
        "kind, code, expected",
        [
            (TransportKind.COOKIE_CAPABLE, 0, TransferExit.SUCCESS),
            (TransportKind.COOKIE_CAPABLE, 18, TransferExit.PARTIAL_FILE),
            (TransportKind.COOKIE_CAPABLE, 22, TransferExit.FAILURE),
            (TransportKind.PLAIN, 0, TransferExit.SUCCESS),
            (TransportKind.PLAIN, 18, TransferExit.FAILURE),
            (TransportKind.PLAIN, 1, TransferExit.FAILURE),
        ],
    )
    def test_from_returncode(self, kind, code, expected):
        assert TransferExit.from_returncode(kind, code) is expected


class TestBuildCommand:
    def test_curl_command_with_cookie(self, cookie_path):
        command = build_command(
            TransportKind.COOKIE_CAPABLE, "curl", URL, "/tmp/out.xip", 5, cookie_path
        )

        assert command[0] == "curl"
        assert "--location" in command
        assert command[command.index("--retry") + 1] == "5"
        assert command[command.index("--continue-at") + 1] == "-"
        assert command[command.index("--cookie") + 1] == str(cookie_path)
        assert command[command.index("--cookie-jar") + 1] == str(cookie_path)
        assert command[command.index("--output") + 1] == "/tmp/out.xip"
        assert command[-1] == URL

    def test_curl_command_without_cookie(self):
        command = build_command(TransportKind.COOKIE_CAPABLE, "curl", URL, os.devnull, 3)
        assert "--cookie" not in command
        assert "--cookie-jar" not in command

    @pytest.mark.parametrize("max_retries, max_tries", [(0, 1), (5, 6)])
    def test_aria2_tries_include_first_attempt(self, tmp_path, max_retries, max_tries):
        command = build_command(
            TransportKind.PLAIN, "aria2c", URL, tmp_path / "y.dmg", max_retries
        )

        assert f"--max-tries={max_tries}" in command

    def test_aria2_command(self, tmp_path):
        target = tmp_path / "sim.dmg"
        command = build_command(TransportKind.PLAIN, "aria2c", URL, target, 4)

        assert command[0] == "aria2c"
        assert "--continue=true" in command
        assert "--max-tries=5" in command
        assert f"--dir={tmp_path}" in command
        assert "--out=sim.dmg" in command
        assert command[-1] == URL


class TestFetch:
    def test_success_first_try(self, both_transports, cookie_path):
        runner = ScriptedRunner(0)

        assert _engine(both_transports, runner, cookie_path).fetch(URL, cookie="c")
        assert len(runner.commands) == 1

    def test_partial_transfers_then_success(self, both_transports, cookie_path):
        runner = ScriptedRunner(18, 18, 18, 0)
        engine = _engine(both_transports, runner, cookie_path, max_resume_attempts=3)

        assert engine.fetch(URL, cookie="session") is True
        assert len(runner.commands) == 4

    def test_resume_budget_exhausted(self, both_transports, cookie_path):
        runner = ScriptedRunner(18, 18, 18, 18, 0)
        engine = _engine(both_transports, runner, cookie_path, max_resume_attempts=3)

        assert engine.fetch(URL, cookie="session") is False
        assert len(runner.commands) == 4

    def test_other_failure_stops_immediately(self, both_transports, cookie_path):
        runner = ScriptedRunner(22, 0)

        assert _engine(both_transports, runner, cookie_path).fetch(URL, cookie="c") is False
        assert len(runner.commands) == 1

    def test_partial_then_other_failure(self, both_transports, cookie_path):
        runner = ScriptedRunner(18, 7, 0)

        assert _engine(both_transports, runner, cookie_path).fetch(URL, cookie="c") is False
        assert len(runner.commands) == 2

    def test_default_budgets(self, both_transports, cookie_path):
        runner = ScriptedRunner(0)
        engine = _engine(both_transports, runner, cookie_path)

        engine.fetch(URL, cookie="c")

        assert engine.max_retries == 5
        assert engine.max_resume_attempts == 3
        command = runner.commands[0]
        assert command[command.index("--retry") + 1] == "5"

    def test_discarded_fetch_uses_cookie_capable_transport(
        self, both_transports, cookie_path
    ):
        runner = ScriptedRunner(0)

        assert _engine(both_transports, runner, cookie_path).fetch(URL)

        command = runner.commands[0]
        assert command[0] == "/usr/bin/curl"
        assert command[command.index("--output") + 1] == os.devnull
        assert "--cookie" not in command

    def test_anonymous_fetch_uses_plain_transport(self, both_transports, cookie_path):
        runner = ScriptedRunner(0)

        _engine(both_transports, runner, cookie_path).fetch(URL, "/tmp/x.dmg")

        assert runner.commands[0][0] == "/usr/bin/aria2c"
        assert not cookie_path.exists()

    def test_lines_are_forwarded(self, both_transports, cookie_path):
        lines = []
        engine = TransferEngine(
            both_transports,
            cookie_path=cookie_path,
            runner=ScriptedRunner(18, 0),
            on_line=lines.append,
        )

        engine.fetch(URL, cookie="c")

        assert lines == ["progress 1", "progress 2"]

    def test_missing_binary_is_configuration_error(self, both_transports, cookie_path):
        def runner(_command, _on_line):
            raise FileNotFoundError("curl")

        with pytest.raises(TransportUnavailableError):
            _engine(both_transports, runner, cookie_path).fetch(URL, cookie="c")
        assert not cookie_path.exists()

    def test_negative_budget_rejected(self, both_transports):
        with pytest.raises(ValueError):
            TransferEngine(both_transports, max_resume_attempts=-1)


class TestCookieFile:
    @pytest.mark.parametrize("exit_codes", [(0,), (22,), (18, 18, 18, 18)])
    def test_cookie_file_removed_after_fetch(self, both_transports, cookie_path, exit_codes):
        runner = ScriptedRunner(*exit_codes, cookie_path=cookie_path)

        _engine(both_transports, runner, cookie_path).fetch(URL, cookie="secret=1")

        assert not cookie_path.exists()
        assert runner.cookie_seen and all(c == "secret=1" for c in runner.cookie_seen)

    def test_cookie_file_removed_on_interrupt(self, both_transports, cookie_path):
        def runner(_command, _on_line):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            _engine(both_transports, runner, cookie_path).fetch(URL, cookie="c")
        assert not cookie_path.exists()

    def test_stale_cookie_file_is_overwritten(self, both_transports, cookie_path):
        cookie_path.write_text("stale cookie content that is longer")
        runner = ScriptedRunner(0, cookie_path=cookie_path)

        _engine(both_transports, runner, cookie_path).fetch(URL, cookie="fresh")

        assert runner.cookie_seen == ["fresh"]
        assert not cookie_path.exists()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_stale_readable_file_is_replaced_with_private_one(
        self, both_transports, cookie_path
    ):
        cookie_path.write_text("old")
        cookie_path.chmod(0o644)
        modes = []

        def runner(_command, _on_line):
            modes.append(cookie_path.stat().st_mode & 0o777)
            return 0

        _engine(both_transports, runner, cookie_path).fetch(URL, cookie="secret")

        assert modes == [0o600]
        assert not cookie_path.exists()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX symlinks")
    def test_symlink_at_cookie_path_is_not_followed(
        self, both_transports, cookie_path, tmp_path
    ):
        target = tmp_path / "target.txt"
        target.write_text("important data")
        cookie_path.symlink_to(target)
        runner = ScriptedRunner(0, cookie_path=cookie_path)

        _engine(both_transports, runner, cookie_path).fetch(URL, cookie="secret")

        assert runner.cookie_seen == ["secret"]
        assert target.read_text() == "important data"
        assert not cookie_path.exists()
        assert not cookie_path.is_symlink()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_cookie_file_is_private(self, cookie_path):
        with cookie_file(cookie_path, "c") as path:
            assert (path.stat().st_mode & 0o777) == 0o600
        assert not cookie_path.exists()


def test_run_command_streams_lines(monkeypatch):
    process = MagicMock()
    process.__enter__.return_value = process
    process.stdout = iter(["first\n", "\n", "second\r\n"])
    process.wait.return_value = 18
    popen = MagicMock(return_value=process)
    monkeypatch.setattr(subprocess, "Popen", popen)
    lines = []

    assert run_command(["curl", URL], lines.append) == 18
    assert lines == ["first", "second"]
    assert popen.call_args.kwargs["stderr"] is subprocess.STDOUT
