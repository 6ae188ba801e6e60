"""Ownership of the server child process inside the worker."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from asyncio.subprocess import Process

from ..config import HarnessConfig
from ..exceptions import TeardownError
from ..log import Logger, LoggerFactory
from .protocol import Command, LifecycleRequest, LifecycleResponse


class CancellationSignal:
    """
    One-shot trigger that requests termination of one child process.

    Created together with the process it controls and never reused.
    Triggering sends SIGTERM to the child's process group, so helpers the
    launch command spawns (cargo runs the built binary as its own child)
    are terminated too, even when the launcher itself has already exited.
    """

    def __init__(self) -> None:
        self._triggered = False
        self._process: Process | None = None

    @property
    def triggered(self) -> bool:
        return self._triggered

    def bind(self, process: Process) -> None:
        if self._process is not None:
            raise RuntimeError("Cancellation signal is already bound to a process")
        self._process = process

    def trigger(self) -> bool:
        """
        Request termination.

        Returns:
            True on the first call, False when already triggered
        """
        if self._triggered:
            return False
        self._triggered = True
        if self._process is not None:
            # Launched with start_new_session, so the pid is the group id
            _signal_group(self._process.pid, signal.SIGTERM)
        return True


def _signal_group(pgid: int, sig: signal.Signals) -> None:
    """Send a signal to every process left in the group."""
    with contextlib.suppress(ProcessLookupError):
        os.killpg(pgid, sig)


class ProcessLifecycleController:
    """
    Owns the server child process and answers start/stop requests.

    Runs inside the worker's event loop. The child process, its
    cancellation signal and its output forwarder are never touched from
    anywhere else; the test driver only sees the responses.

    Example:
        controller = ProcessLifecycleController(config, lg)
        response = await controller.handle(LifecycleRequest(Command.START))
        ...
        response = await controller.handle(LifecycleRequest(Command.STOP))
    """

    def __init__(self, config: HarnessConfig, lg: Logger) -> None:
        self._config = config
        self._lg = lg
        self._server_lg = LoggerFactory.derive(lg, "server")
        self._signal: CancellationSignal | None = None
        self._process: Process | None = None
        self._pgid: int | None = None
        self._forwarder: asyncio.Task[None] | None = None

    @property
    def process(self) -> Process | None:
        return self._process

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def handle(self, request: LifecycleRequest) -> LifecycleResponse:
        """Dispatch a lifecycle request and build its response."""
        if request.command is Command.START:
            return await self._on_start()
        return await self._on_stop()

    async def _on_start(self) -> LifecycleResponse:
        if self._process is not None:
            # Only one server per worker; the driver brackets each test with
            # exactly one start/stop pair, so this is a caller bug
            self._lg.error(
                "start requested while server is live", extra={"pid": self.pid}
            )
            return LifecycleResponse(
                Command.STARTED, error=f"server already running (pid={self.pid})"
            )

        server = self._config.server
        cancel = CancellationSignal()
        try:
            process = await asyncio.create_subprocess_exec(
                *server.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=server.cwd,
                env={**os.environ, **server.env},
                start_new_session=True,
            )
        except OSError as e:
            self._lg.error(
                "failed to launch server",
                extra={"command": server.command, "exception": e},
            )
            return LifecycleResponse(
                Command.STARTED, error=f"failed to launch {server.command[0]!r}: {e}"
            )

        cancel.bind(process)
        self._signal = cancel
        self._process = process
        self._pgid = process.pid
        self._forwarder = asyncio.create_task(self._forward_output(process))

        self._lg.info(
            "server started", extra={"pid": process.pid, "command": server.command}
        )
        return LifecycleResponse(Command.STARTED, pid=process.pid)

    async def _on_stop(self) -> LifecycleResponse:
        if self._process is None:
            self._lg.debug("stop requested with no server running")
            return LifecycleResponse(Command.STOPPED)

        process = self._process
        try:
            await self._terminate()
        except Exception as e:
            self._lg.error(
                "failed to stop server", extra={"pid": process.pid, "exception": e}
            )
            return LifecycleResponse(Command.STOPPED, error=str(e))
        finally:
            self._release()

        self._lg.info(
            "server stopped", extra={"pid": process.pid, "code": process.returncode}
        )
        return LifecycleResponse(Command.STOPPED)

    async def _terminate(self) -> None:
        """SIGTERM the group, then SIGKILL it once the grace period runs out."""
        assert self._signal is not None and self._pgid is not None
        self._signal.trigger()

        grace = self._config.timeouts.shutdown_grace
        try:
            await asyncio.wait_for(self._wait_terminated(), timeout=grace)
            return
        except TimeoutError:
            self._lg.warning(
                f"server did not terminate within {grace}s, sending SIGKILL",
                extra={"pid": self._pgid},
            )

        _signal_group(self._pgid, signal.SIGKILL)
        try:
            await asyncio.wait_for(self._wait_terminated(), timeout=grace)
        except TimeoutError:
            # Only a process that left the group can still hold the pipe
            raise TeardownError(
                "server output still open after SIGKILL",
                pid=self._pgid,
                timeout=grace,
            ) from None

    def _release(self) -> None:
        if self._forwarder is not None and not self._forwarder.done():
            self._forwarder.cancel()
        self._signal = None
        self._process = None
        self._pgid = None
        self._forwarder = None

    async def _wait_terminated(self) -> None:
        """Wait for exit status and for the output stream to reach EOF."""
        assert self._process is not None
        await self._process.wait()
        if self._forwarder is not None:
            # EOF only arrives once every holder of the pipe (grandchildren
            # included) is gone, which is what frees the listening port.
            # Shielded so a timed-out wait does not kill the forwarder.
            await asyncio.shield(self._forwarder)

    async def _forward_output(self, process: Process) -> None:
        """Forward child output to the worker log, line by line."""
        stream = process.stdout
        assert stream is not None
        while True:
            try:
                chunk = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                self._emit(e.partial)
                return
            except asyncio.LimitOverrunError as e:
                # Overlong line: forward what is buffered and keep draining
                chunk = await stream.read(e.consumed)
            self._emit(chunk)

    def _emit(self, chunk: bytes) -> None:
        text = chunk.decode(errors="replace").rstrip()
        if text:
            self._server_lg.info(text)

    async def aclose(self) -> None:
        """Stop any live server; used when the worker itself shuts down."""
        if self._process is not None:
            self._lg.debug("worker closing with live server, stopping it")
            await self._on_stop()
