"""
Test orchestration: bracket a test body with one full server lifecycle.

Every test runs against a freshly started server and leaves nothing
behind: the client is closed, the server stopped and the worker released
whether the body passes or fails.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import redis.asyncio as aioredis
import redis.exceptions

from ..config import HarnessConfig, load_config
from ..exceptions import StartupError, TeardownError
from ..log import LogConfig, Logger, LoggerFactory
from ..runtime import WorkerManager

T = TypeVar("T")

Body = Callable[[aioredis.Redis], Awaitable[T]]
ClientFactory = Callable[[HarnessConfig], aioredis.Redis]

# Errors meaning "server not accepting commands yet"
_NOT_READY = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError, OSError)


def default_client_factory(config: HarnessConfig) -> aioredis.Redis:
    """Create a client for the configured server address."""
    return aioredis.Redis(
        host=config.server.host,
        port=config.server.port,
        decode_responses=True,
    )


class ServerHarness:
    """
    Runs test bodies against a freshly started server.

    Acquisition order is worker, response polling, server, client;
    release runs in exactly the reverse order and every release step runs
    even when an earlier one failed.

    Example:
        harness = ServerHarness(load_config())

        async def body(client):
            await client.set("foo", "bar")
            assert await client.get("foo") == "bar"

        await harness.with_server(body)
    """

    def __init__(
        self,
        config: HarnessConfig | None = None,
        client_factory: ClientFactory | None = None,
        lg: Logger | None = None,
        worker_factory: Callable[[HarnessConfig, Logger], Any] = WorkerManager,
    ) -> None:
        self.config = config if config is not None else load_config()
        self._client_factory = client_factory or default_client_factory
        self._worker_factory = worker_factory
        if lg is None:
            root = LoggerFactory.create_root(LogConfig.from_settings(self.config.logging))
            lg = LoggerFactory.derive(root, "harness")
        self._lg = lg

    async def with_server(self, body: Body[T]) -> T:
        """
        Run body(client) inside one start/stop cycle.

        Returns:
            Whatever the body returns

        Raises:
            Exception: The body's own failure, unchanged, when it failed
            StartupError: If the server could not be started or reached
            TeardownError: If only the teardown failed
        """
        async with self.session() as client:
            return await body(client)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[aioredis.Redis]:
        """Async context manager form of with_server()."""
        worker = self._worker_factory(self.config, self._lg)
        worker.start()
        async with self._released("stop worker", lambda: asyncio.to_thread(worker.stop)):
            channel = worker.channel()
            async with self._released("stop response polling", channel.stop_polling):
                response = await channel.start()
                self._lg.debug("server started", extra={"pid": response.pid})
                async with self._released("stop server", channel.stop):
                    client = await self._connect()
                    async with self._released("close client", client.aclose):
                        yield client

    @asynccontextmanager
    async def _released(
        self, what: str, release: Callable[[], Any]
    ) -> AsyncIterator[None]:
        """
        Run release on exit, whatever happens inside the block.

        While another exception is in flight a failing release is only
        logged and the original exception keeps propagating.
        """
        try:
            yield
        except BaseException:
            try:
                await _call(release)
            except Exception as e:
                self._lg.error(f"failed to {what}", extra={"exception": e})
            raise
        else:
            try:
                await _call(release)
            except TeardownError:
                raise
            except Exception as e:
                raise TeardownError(f"failed to {what}", error=repr(e)) from e
        self._lg.trace(f"{what}: done")

    async def _connect(self) -> aioredis.Redis:
        """
        Open a client and wait until the server answers PING.

        Raises:
            StartupError: If the server is not reachable within the
                connect timeout
        """
        timeouts = self.config.timeouts
        client = self._client_factory(self.config)
        deadline = time.monotonic() + timeouts.connect
        attempts = 0
        while True:
            attempts += 1
            try:
                await client.ping()
                break
            except _NOT_READY as e:
                if time.monotonic() >= deadline:
                    await client.aclose()
                    raise StartupError(
                        "server not reachable",
                        address="%s:%d" % self.config.address,
                        attempts=attempts,
                        timeout=timeouts.connect,
                    ) from e
            await asyncio.sleep(timeouts.connect_interval)

        self._lg.debug(
            "client connected",
            extra={"address": "%s:%d" % self.config.address, "attempts": attempts},
        )
        return client


async def _call(release: Callable[[], Any]) -> None:
    result = release()
    if inspect.isawaitable(result):
        await result


async def with_server(body: Body[T], config: HarnessConfig | None = None) -> T:
    """Run body(client) inside one start/stop cycle of a new harness."""
    return await ServerHarness(config).with_server(body)


def server_test(
    body: Body[Any] | None = None, *, config: HarnessConfig | None = None
) -> Any:
    """
    Turn ``async def body(client)`` into a zero-argument async test.

    Example:
        @pytest.mark.asyncio
        @server_test
        async def test_set_get(client):
            await client.set("foo", "bar")
            assert await client.get("foo") == "bar"
    """

    def decorator(fn: Body[Any]) -> Callable[[], Awaitable[Any]]:
        async def test() -> Any:
            return await with_server(fn, config)

        # Copied by hand: functools.wraps would expose fn's signature and
        # pytest would then look for a "client" fixture
        test.__name__ = fn.__name__
        test.__qualname__ = fn.__qualname__
        test.__doc__ = fn.__doc__
        test.__module__ = fn.__module__
        return test

    if body is not None:
        return decorator(body)
    return decorator
