"""Isolated worker process hosting the process lifecycle controller."""

from __future__ import annotations

import asyncio
import multiprocessing as mp
import signal
from dataclasses import dataclass
from queue import Empty
from typing import Any

from ..config import HarnessConfig
from ..exceptions import HarnessError
from ..log import LogConfig, Logger, LoggerFactory
from .channel import HandshakeChannel
from .controller import ProcessLifecycleController
from .logging import setup_worker_logging
from .protocol import LifecycleRequest

# Put on the request queue to ask the worker loop to exit
SHUTDOWN = None


async def _serve(
    controller: ProcessLifecycleController,
    request_q: mp.Queue[Any],
    response_q: mp.Queue[Any],
    config: HarnessConfig,
    lg: Logger,
) -> None:
    """
    Worker-side dispatch loop.

    Requests are handled strictly one at a time in arrival order; each
    gets exactly one response.
    """
    loop = asyncio.get_running_loop()
    stopping = asyncio.Event()
    loop.add_signal_handler(signal.SIGTERM, stopping.set)
    poll_interval = config.worker.poll_interval

    def _get() -> Any:
        try:
            return request_q.get(timeout=poll_interval)
        except Empty:
            return Empty

    try:
        while not stopping.is_set():
            message = await loop.run_in_executor(None, _get)
            if message is Empty:
                continue
            if message is SHUTDOWN:
                lg.debug("shutdown requested")
                break

            try:
                request = LifecycleRequest.from_message(message)
            except HarnessError as e:
                lg.error("dropping malformed request", extra={"exception": e})
                continue

            lg.trace("handling request", extra={"command": request.command.value})
            response = await controller.handle(request)
            response_q.put(response.to_message())
    finally:
        await controller.aclose()


def worker_main(
    config: HarnessConfig,
    request_q: mp.Queue[Any],
    response_q: mp.Queue[Any],
) -> None:
    """
    Entry point of the worker process.

    Sets up logging, then runs the dispatch loop until the driver sends
    the shutdown sentinel or terminates the worker.
    """
    lg = setup_worker_logging(config.logging)
    controller = ProcessLifecycleController(config, lg)
    lg.debug("worker started")
    asyncio.run(_serve(controller, request_q, response_q, config, lg))
    lg.debug("worker exiting")


@dataclass
class WorkerState:
    """Worker lifecycle state."""

    process: mp.process.BaseProcess | None = None


class WorkerManager:
    """
    Manages the isolated worker process.

    The worker owns the server child process exclusively; the driver talks
    to it only through the HandshakeChannel returned by channel(). One
    manager serves one test cycle.

    Example:
        manager = WorkerManager(config)
        manager.start()
        channel = manager.channel()
        await channel.start()
        ...
        await channel.stop()
        await channel.stop_polling()
        manager.stop()
    """

    def __init__(self, config: HarnessConfig, lg: Logger | None = None) -> None:
        self._config = config
        self._lg = lg
        self._ctx = mp.get_context(config.worker.start_method)
        self._request_q: mp.Queue[Any] = self._ctx.Queue()
        self._response_q: mp.Queue[Any] = self._ctx.Queue()
        self._state = WorkerState()
        self._channel: HandshakeChannel | None = None

    @property
    def process(self) -> mp.process.BaseProcess | None:
        return self._state.process

    @property
    def pid(self) -> int | None:
        proc = self._state.process
        return proc.pid if proc else None

    def is_alive(self) -> bool:
        proc = self._state.process
        return proc is not None and proc.is_alive()

    def _logger(self) -> Logger:
        if self._lg is None:
            root = LoggerFactory.create_root(
                LogConfig.from_settings(self._config.logging)
            )
            self._lg = LoggerFactory.derive(root, "harness")
        return self._lg

    def start(self) -> mp.process.BaseProcess:
        """
        Start the worker process.

        Raises:
            RuntimeError: If the worker is already running
        """
        if self.is_alive():
            raise RuntimeError("Worker already running")

        proc = self._ctx.Process(
            target=worker_main,
            args=(self._config, self._request_q, self._response_q),
            daemon=True,
            name="kvharness-worker",
        )
        proc.start()
        self._state.process = proc
        self._logger().debug("worker process started", extra={"pid": proc.pid})
        return proc

    def channel(self) -> HandshakeChannel:
        """Driver-side channel bound to this worker's queues."""
        if self._channel is None:
            self._channel = HandshakeChannel(
                self._request_q,
                self._response_q,
                self._config,
                LoggerFactory.derive(self._logger(), "channel"),
            )
        return self._channel

    def stop(self) -> None:
        """
        Stop the worker process.

        Asks the dispatch loop to exit, then falls back to
        terminate -> join(timeout) -> kill.
        """
        proc = self._state.process
        if proc is None:
            return

        timeout = self._config.timeouts.worker_join
        if proc.is_alive():
            self._request_q.put(SHUTDOWN)
            proc.join(timeout=timeout)

        if proc.is_alive():
            self._logger().warning(
                f"worker did not exit within {timeout}s, sending SIGTERM",
                extra={"pid": proc.pid},
            )
            proc.terminate()
            proc.join(timeout=timeout)

        if proc.is_alive():
            self._logger().warning(
                "worker ignored SIGTERM, sending SIGKILL", extra={"pid": proc.pid}
            )
            proc.kill()
            proc.join()

        self._state.process = None
        self._request_q.cancel_join_thread()
        self._request_q.close()
        self._response_q.close()
        self._logger().debug("worker process stopped", extra={"code": proc.exitcode})
