"""Replay a shell script into an asciinema recording, typing it out character by character."""

from __future__ import annotations

import codecs
import contextlib
import re
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import IO, Optional, Sequence, Union

__all__ = [
    "CTRL_PREFIX",
    "ScriptError",
    "Shell",
    "Wait",
    "Delay",
    "Script",
    "parse_wait",
    "parse_delay",
    "new_ctrl",
    "load_script",
    "main",
]

CTRL_PREFIX = "#$"

UNKNOWN_CTRL = "unknown control command"
NO_ARGS = "no arguments given to command"
BAD_ARG = "invalid command argument"

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ScriptError(Exception):
    """A script could not be parsed or run."""


def _sleep(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)


def _parse_millis(opts: Sequence[str]) -> float:
    if not opts:
        raise ScriptError(NO_ARGS)
    text = opts[0].strip()
    if not _INTEGER.fullmatch(text):
        raise ScriptError(BAD_ARG)
    return int(text) / 1000


@dataclass
class Shell:
    """A shell command to type into the recording."""

    cmd: str

    def __post_init__(self) -> None:
        if not self.cmd.endswith("\n"):
            self.cmd += "\n"

    def run(self, script: "Script") -> None:
        for char in self.cmd:
            try:
                script.stdin.write(char.encode())
                script.stdin.flush()
            except (OSError, ValueError, AttributeError) as exc:
                raise SystemExit(1) from exc
            _sleep(script.delay)


@dataclass
class Wait:
    """Changes the pause between commands, in seconds."""

    duration: float

    def run(self, script: "Script") -> None:
        script.wait = self.duration


@dataclass
class Delay:
    """Changes the typing interval between characters, in seconds."""

    interval: float

    def run(self, script: "Script") -> None:
        script.delay = self.interval


Command = Union[Shell, Wait, Delay]


def parse_wait(opts: Sequence[str]) -> Wait:
    """Build a :class:`Wait` from arguments whose first is a count of milliseconds."""
    return Wait(_parse_millis(opts))


def parse_delay(opts: Sequence[str]) -> Delay:
    """Build a :class:`Delay` from arguments whose first is a count of milliseconds."""
    return Delay(_parse_millis(opts))


def new_ctrl(cmd: str) -> Command:
    """Parse a control command such as ``delay 40`` or ``wait 100``."""
    tokens = cmd.split(" ")
    name = tokens[0].strip()
    if name == "delay":
        return parse_delay(tokens[1:])
    if name == "wait":
        return parse_wait(tokens[1:])
    raise ScriptError(UNKNOWN_CTRL)


def _echo(stream: IO[bytes]) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while chunk := stream.read(1024):
        sys.stdout.write(decoder.decode(chunk))
        sys.stdout.flush()


@dataclass
class Script:
    """A parsed script and the recorder process it is typed into."""

    args: list[str] = field(default_factory=list)
    commands: list[Command] = field(default_factory=list)
    delay: float = 0.04
    wait: float = 0.1
    process: Optional[subprocess.Popen] = None
    stdin: Optional[IO[bytes]] = None

    def start(self) -> None:
        """Start ``asciinema rec`` with the script's arguments."""
        self.process = subprocess.Popen(
            ["asciinema", "rec", *self.args],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=0,
        )
        self.stdin = self.process.stdin
        for stream in (self.process.stdout, self.process.stderr):
            threading.Thread(target=_echo, args=(stream,), daemon=True).start()

    def stop(self) -> int:
        """End the recording and return the recorder's exit status."""
        if self.process is None or self.stdin is None:
            raise ScriptError("recording has not been started")
        try:
            self.stdin.write(b"\x04")
            self.stdin.flush()
            if not self.args or self.args[0].startswith("-"):
                self._end_dialog()
        finally:
            self.process.wait()
        return self.process.returncode

    def _end_dialog(self) -> None:
        try:
            input()
        except KeyboardInterrupt:
            self.process.send_signal(signal.SIGINT)
            return
        except EOFError:
            pass
        with contextlib.suppress(OSError, ValueError):
            self.stdin.write(b"\n")
            self.stdin.flush()

    def execute(self) -> None:
        """Run every command in order, pausing after each."""
        for command in self.commands:
            command.run(self)
            _sleep(self.wait)


def load_script(path: str, args: Sequence[str] = ()) -> Script:
    """Parse the script file at ``path``; lines starting with ``#$`` are control commands."""
    with open(path, encoding="utf-8", newline="") as handle:
        text = handle.read()
    script = Script(args=list(args))
    lines = text.split("\n")
    for number, line in enumerate(lines, start=1):
        if line == "" and number == len(lines):
            continue
        if line.startswith(CTRL_PREFIX):
            try:
                ctrl = new_ctrl(line[len(CTRL_PREFIX):].strip())
            except ScriptError as exc:
                raise ScriptError(f"{exc} (line {number})") from exc
            script.commands.append(ctrl)
        else:
            script.commands.append(Shell(line))
    return script


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Record the given script with asciinema."""
    prog = sys.argv[0] if sys.argv and sys.argv[0] else "asciinema-run"
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in ("-h", "--help"):
        raise SystemExit(f"usage: {prog} <script>")
    try:
        subprocess.run(
            ["asciinema", "-h"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise SystemExit("can't find asciinema executable") from exc

    try:
        script = load_script(args[0], args[1:])
    except (OSError, ScriptError) as exc:
        raise SystemExit(f"parsing script failed: {exc}") from exc

    try:
        script.start()
    except OSError as exc:
        raise SystemExit(f"couldn't start recording: {exc}") from exc

    try:
        script.execute()
    finally:
        try:
            script.stop()
        except OSError as exc:
            raise SystemExit(f"couldn't stop recording: {exc}") from exc
    return 0