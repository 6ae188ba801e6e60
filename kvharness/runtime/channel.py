"""Queue-based handshake channel between the test driver and the worker."""

from __future__ import annotations

import asyncio
from collections import Counter
from multiprocessing.queues import Queue
from queue import Empty
from typing import Any

from ..config import HarnessConfig
from ..exceptions import (
    HandshakeTimeoutError,
    HarnessError,
    ProtocolError,
    StartupError,
    TeardownError,
)
from ..log import Logger
from .protocol import START, STOP, Command, LifecycleRequest, LifecycleResponse


class HandshakeChannel:
    """
    Driver side of the start/started, stop/stopped protocol.

    Requests go out on request_q, responses come back on response_q; both
    are ordered and reliable, so there is no retry or acknowledgement
    layer. Each request registers a single-resolution future for the
    response kind that answers it. The future is removed from ``pending``
    before being resolved, so a later cycle's response can only reach a
    freshly registered future.

    Example:
        channel = HandshakeChannel(request_q, response_q, config, lg)
        await channel.start_polling()
        await channel.start()     # returns once "started" arrived
        ...
        await channel.stop()      # returns once "stopped" arrived
        await channel.stop_polling()
    """

    def __init__(
        self,
        request_q: Queue[Any],
        response_q: Queue[Any],
        config: HarnessConfig,
        lg: Logger,
    ) -> None:
        self.request_q = request_q
        self.response_q = response_q
        self.config = config
        self._lg = lg

        self.pending: dict[Command, asyncio.Future[LifecycleResponse]] = {}
        self.stats: Counter[str] = Counter()
        self._cycle_open = False
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def cycle_open(self) -> bool:
        """True between an observed "started" and the matching "stopped"."""
        return self._cycle_open

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None

    async def start(self, timeout: float | None = None) -> LifecycleResponse:
        """
        Request server start and wait for "started".

        Raises:
            ProtocolError: If a cycle is already open
            StartupError: If the worker could not launch the server
            HandshakeTimeoutError: If no response arrives in time
        """
        if self._cycle_open:
            raise ProtocolError("start requested while a cycle is open")
        response = await self.submit(START, timeout)
        self._cycle_open = True
        return response

    async def stop(self, timeout: float | None = None) -> LifecycleResponse:
        """
        Request server stop and wait for "stopped".

        Raises:
            ProtocolError: If "started" was not observed first
            HandshakeTimeoutError: If no response arrives in time
        """
        if not self._cycle_open:
            raise ProtocolError("stop requested before started was observed")
        response = await self.submit(STOP, timeout)
        self._cycle_open = False
        return response

    async def submit(
        self, request: LifecycleRequest, timeout: float | None = None
    ) -> LifecycleResponse:
        """
        Send a request and wait for its response.

        Args:
            request: Request to send
            timeout: Override the configured handshake timeout (seconds)

        Returns:
            The matching response
        """
        expected = request.expected_response
        if expected in self.pending:
            raise ProtocolError(
                "a listener is already waiting", response=expected.value
            )

        await self.start_polling()

        loop = asyncio.get_running_loop()
        future: asyncio.Future[LifecycleResponse] = loop.create_future()
        self.pending[expected] = future

        self._lg.trace("sending request", extra={"command": request.command.value})
        self.request_q.put(request.to_message())
        self.stats[f"sent:{request.command.value}"] += 1

        effective_timeout = (
            timeout if timeout is not None else self.config.timeouts.handshake
        )
        try:
            return await asyncio.wait_for(future, timeout=effective_timeout)
        except TimeoutError:
            self.pending.pop(expected, None)
            raise HandshakeTimeoutError(
                f"no {expected.value!r} response", timeout=effective_timeout
            ) from None
        except asyncio.CancelledError:
            self.pending.pop(expected, None)
            raise

    async def start_polling(self) -> None:
        """Start the background task reading the response queue."""
        if self._poll_task is not None:
            return
        self._poll_task = asyncio.create_task(self._poll_responses())
        self._lg.trace("started response polling task")

    async def stop_polling(self) -> None:
        """Stop polling and cancel pending waits."""
        if self._poll_task is None:
            return

        self._poll_task.cancel()
        try:
            await self._poll_task
        except asyncio.CancelledError:
            pass
        self._poll_task = None

        for future in self.pending.values():
            if not future.done():
                future.cancel()
        self.pending.clear()

        self._lg.trace("stopped response polling task")

    async def _read_queue_item(self, loop: asyncio.AbstractEventLoop) -> Any | None:
        """Read item from response queue without blocking event loop."""
        try:
            return await loop.run_in_executor(
                None,
                lambda: self.response_q.get(timeout=self.config.worker.poll_interval),
            )
        except Empty:
            await asyncio.sleep(0)
            return None

    async def _poll_responses(self) -> None:
        """Background task polling response queue and resolving futures."""
        loop = asyncio.get_running_loop()

        while True:
            try:
                item = await self._read_queue_item(loop)
                if item is not None:
                    self._dispatch_response(item)
            except asyncio.CancelledError:
                break
            except HarnessError as e:
                self._lg.error("dropping malformed response", extra={"exception": e})
            except Exception as e:
                self._lg.error("error polling responses", extra={"exception": e})
                await asyncio.sleep(self.config.worker.poll_interval)

    def _dispatch_response(self, message: Any) -> None:
        """Route a response to the future waiting for its kind."""
        response = LifecycleResponse.from_message(message)
        self.stats[f"received:{response.command.value}"] += 1
        self._lg.trace("received response", extra=response.to_message())
        self._handle_response(response)

    def _handle_response(self, response: LifecycleResponse) -> None:
        # One-shot: the listener is deregistered before it fires
        future = self.pending.pop(response.command, None)
        if future is None:
            self._lg.warning(
                "received response nobody waits for",
                extra={"command": response.command.value},
            )
            return
        if future.done():
            return

        if response.ok:
            future.set_result(response)
        elif response.command is Command.STARTED:
            future.set_exception(StartupError(str(response.error)))
        else:
            future.set_exception(TeardownError(str(response.error)))
