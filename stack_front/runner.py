"""Process runner — launch build-tool commands into named output channels.

``ProcessRunner.run()`` spawns the child process and returns as soon as
it has started; output is pumped into the command's ``OutputChannel``
by a background task, and every registered finish callback receives a
``ProcessOutcome`` when the process exits.

The runner never queues or serialises invocations: two ``run()`` calls
give two concurrent processes.  Nothing here enforces a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

from stack_front.commands import Command
from stack_front.errors import ProcessSpawnError

logger = logging.getLogger(__name__)

OUTPUT_LOGGER_PREFIX: str = "stack_front.output"
READ_CHUNK: int = 65536

Status = Literal["finished", "failed-to-start", "cancelled"]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ProcessOutcome(BaseModel):
    """Result delivered to finish callbacks."""

    model_config = ConfigDict(frozen=True)

    channel_key: str = Field(..., description="Output channel the run wrote to")
    command: str = Field(..., description="Command text that was launched")
    status: Status = Field(..., description="How the run ended")
    exit_code: int = Field(default=-1, description="Exit code (-1 if none)")
    output: str = Field(default="", description="Complete channel text")
    duration_ms: int = Field(default=0, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.status == "finished" and self.exit_code == 0


FinishCallback = Callable[[ProcessOutcome], None]


class OutputChannel:
    """Named, append-only text buffer for one package's process output."""

    __slots__ = ("key", "_lines", "_log")

    def __init__(self, key: str) -> None:
        self.key = key
        self._lines: list[str] = []
        self._log = logging.getLogger(f"{OUTPUT_LOGGER_PREFIX}.{key}")

    def append(self, line: str) -> None:
        self._lines.append(line)
        self._log.debug("%s", line.rstrip("\n"))

    def clear(self) -> None:
        self._lines.clear()

    @property
    def text(self) -> str:
        return "".join(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"OutputChannel(key={self.key!r}, lines={len(self._lines)})"


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ProcessRunner:
    """Spawns commands and reports their completion.

    Parameters
    ----------
    env:
        Extra environment variables merged over ``os.environ``.
    """

    def __init__(self, *, env: dict[str, str] | None = None) -> None:
        self._env = env
        self._channels: dict[str, OutputChannel] = {}
        self._callbacks: list[FinishCallback] = []
        self._tasks: set[asyncio.Task] = set()

    # -- channels & callbacks ------------------------------------------------

    def channel(self, key: str) -> OutputChannel:
        """Return the channel named *key*, creating it on first use."""
        chan = self._channels.get(key)
        if chan is None:
            chan = self._channels[key] = OutputChannel(key)
        return chan

    def channels(self) -> list[str]:
        return sorted(self._channels)

    def on_finish(self, callback: FinishCallback) -> None:
        self._callbacks.append(callback)

    @property
    def running(self) -> int:
        return len(self._tasks)

    # -- launch --------------------------------------------------------------

    async def run(self, command: Command) -> asyncio.Task:
        """Start *command* and return the task that watches it.

        The channel is cleared first.  Edited commands are free text and
        go through the shell; everything else is exec'd from ``argv``.

        Raises
        ------
        ProcessSpawnError
            When the process cannot be started.  Finish callbacks are
            still notified with status ``failed-to-start``.
        """
        chan = self.channel(command.log_channel_key)
        chan.clear()
        chan.append(f"$ {command.text}\n")
        start = time.perf_counter()

        try:
            proc = await self._spawn(command)
        except OSError as exc:
            reason = exc.strerror or str(exc)
            chan.append(f"failed to start: {reason}\n")
            logger.error("[runner] cannot start %s: %s", command.text, reason)
            self._notify(ProcessOutcome(
                channel_key=chan.key,
                command=command.text,
                status="failed-to-start",
                output=chan.text,
                duration_ms=_elapsed_ms(start),
            ))
            raise ProcessSpawnError(command.text, reason) from exc

        logger.info(
            "[runner] started pid=%s in %s: %s",
            proc.pid, command.working_directory, command.text,
        )
        task = asyncio.ensure_future(self._watch(proc, command, chan, start))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_all(self) -> None:
        """Block until every launched process has been reported."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- internal -----------------------------------------------------------

    async def _spawn(self, command: Command) -> asyncio.subprocess.Process:
        env = {**os.environ, **self._env} if self._env else None
        common = dict(
            cwd=str(command.working_directory),
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        if command.edited:
            return await asyncio.create_subprocess_shell(command.text, **common)
        return await asyncio.create_subprocess_exec(*command.argv, **common)

    async def _watch(
        self,
        proc: asyncio.subprocess.Process,
        command: Command,
        chan: OutputChannel,
        start: float,
    ) -> ProcessOutcome:
        status: Status = "finished"
        try:
            if proc.stdout is not None:
                await _pump(proc.stdout, chan)
            await proc.wait()
        except asyncio.CancelledError:
            status = "cancelled"
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            outcome = ProcessOutcome(
                channel_key=chan.key,
                command=command.text,
                status=status,
                exit_code=proc.returncode,
                output=chan.text,
                duration_ms=_elapsed_ms(start),
            )
            logger.info(
                "[runner] %s %s exit=%s (%dms)",
                chan.key, status, proc.returncode, outcome.duration_ms,
            )
            self._notify(outcome)
        return outcome

    def _notify(self, outcome: ProcessOutcome) -> None:
        for cb in list(self._callbacks):
            try:
                cb(outcome)
            except Exception:
                logger.exception("[runner] finish callback %r failed", cb)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


async def _pump(stream: asyncio.StreamReader, chan: OutputChannel) -> None:
    """Copy *stream* into *chan* line by line, whatever the line length."""
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break
        *lines, pending = (pending + chunk).split(b"\n")
        for line in lines:
            chan.append(line.decode("utf-8", errors="replace") + "\n")
    if pending:
        chan.append(pending.decode("utf-8", errors="replace"))
