"""Lifecycle and request channel of the external search server."""

import asyncio
import enum
import logging
import shlex
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_STARTUP_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 60.0
READ_CHUNK_SIZE = 4096
MAX_PORT = 65535


class BackendError(Exception):
    """Base class for search server failures."""


class BackendNotReadyError(BackendError):
    """The server has not announced its address (yet)."""


class BackendClosedError(BackendError):
    """The server was stopped or exited."""


class BackendTransportError(BackendError):
    """The request could not be sent or the reply could not be decoded."""


class BackendResponseError(BackendError):
    """The server answered with an error payload."""


class BackendState(enum.Enum):
    NOT_STARTED = "not-started"
    STARTING = "starting"
    LISTENING = "listening"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class Listening:
    """Startup succeeded and the server accepts requests at ``address``."""

    address: str


@dataclass(frozen=True)
class Failed:
    """Startup failed or the server exited."""

    exit_code: Optional[int]
    stderr: str
    stdout: str
    reason: str = ""

    def describe(self) -> str:
        parts = [self.reason or f"Search server exited with code {self.exit_code}"]
        if self.stderr.strip():
            parts.append(self.stderr.strip())
        if self.stdout.strip():
            parts.append(self.stdout.strip())
        return "\n".join(parts)


StartResult = Union[Listening, Failed]


def parse_address(line: str) -> Optional[str]:
    """Return ``host:port`` from an announcement line, or None if malformed."""
    address = line.strip()
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        return None
    if not 0 < int(port) <= MAX_PORT:
        return None
    return address


class BackendProcess:
    """One search server process and the channel to talk to it.

    The server prints its ``host:port`` as the first line of standard output.
    Until then ``send`` waits up to ``startup_timeout`` seconds and raises
    ``BackendNotReadyError`` if the address does not show up.
    """

    def __init__(
        self,
        command: Union[str, Sequence[str]],
        workdir: Optional[str] = None,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.workdir = workdir
        self.startup_timeout = startup_timeout
        self.request_timeout = request_timeout
        self._transport = transport

        self.state = BackendState.NOT_STARTED
        self.address: Optional[str] = None
        self.exit_code: Optional[int] = None
        self.stdout = ""
        self.stderr = ""

        self._process: Optional[asyncio.subprocess.Process] = None
        self._started: Optional[asyncio.Future] = None
        self._tasks: list[asyncio.Task] = []
        self._exit_listeners: list[Callable[[Failed], None]] = []

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def is_listening(self) -> bool:
        return self.state is BackendState.LISTENING

    def add_exit_listener(self, callback: Callable[[Failed], None]):
        """Call ``callback`` when the server fails after spawning."""
        self._exit_listeners.append(callback)

    async def spawn(self):
        """Start the server process and its output readers."""
        if self.state is not BackendState.NOT_STARTED:
            raise BackendError(f"Search server already spawned (state: {self.state.value})")

        self.state = BackendState.STARTING
        self._started = asyncio.get_running_loop().create_future()
        logger.info(f"Starting search server: {shlex.join(self.command)} (cwd={self.workdir})")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.workdir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to spawn search server: {e}")
            if self.state is BackendState.CLOSED:
                return
            self._fail(Failed(exit_code=None, stderr=self.stderr, stdout=self.stdout, reason=str(e)))
            return

        stdout_task = asyncio.create_task(self._read_stdout())
        stderr_task = asyncio.create_task(self._read_stderr())
        self._tasks = [stdout_task, stderr_task, asyncio.create_task(self._watch_exit(stdout_task, stderr_task))]

        # stop() may have run while the process was being created
        if self.state is BackendState.CLOSED:
            logger.info("Search server was stopped during spawn, terminating it")
            self._terminate()

    async def wait_started(self, timeout: Optional[float] = None) -> StartResult:
        """Wait for the address announcement or the startup failure."""
        if self._started is None:
            raise BackendNotReadyError("Search server has not been spawned")
        try:
            return await asyncio.wait_for(asyncio.shield(self._started), timeout)
        except asyncio.TimeoutError:
            raise BackendNotReadyError(
                f"Search server did not announce its address within {timeout} seconds"
            ) from None

    async def wait_for_address(self, timeout: Optional[float] = None) -> str:
        """Return the server address, waiting at most ``timeout`` seconds."""
        if self.state is BackendState.LISTENING:
            return self.address
        if self.state in (BackendState.FAILED, BackendState.CLOSED):
            raise BackendClosedError(f"Search server is {self.state.value}")
        if self.state is BackendState.NOT_STARTED:
            raise BackendNotReadyError("Search server has not been spawned")
        if timeout is not None and timeout <= 0:
            raise BackendNotReadyError("Search server has not announced its address yet")

        result = await self.wait_started(timeout)
        if isinstance(result, Failed):
            raise BackendClosedError(result.describe())
        return result.address

    async def send(self, payload: dict) -> dict:
        """POST a search request and return the decoded reply."""
        address = await self.wait_for_address(self.startup_timeout)
        url = f"http://{address}/search"
        logger.debug(f"POST {url} {payload}")

        async with httpx.AsyncClient(transport=self._transport, timeout=self.request_timeout) as client:
            try:
                response = await client.post(url, json=payload)
            except httpx.HTTPError as e:
                logger.error(f"Search request to {url} failed: {e}")
                raise BackendTransportError(str(e) or type(e).__name__) from e
            except Exception as e:
                # Invalid URLs and transport internals do not derive from HTTPError
                logger.exception(f"Search request to {url} failed")
                raise BackendTransportError(f"{type(e).__name__}: {e}") from e

        # Errors come back as JSON bodies with a 4xx status, so decode first.
        try:
            data = response.json()
        except ValueError as e:
            raise BackendTransportError(
                f"Invalid response from search server (HTTP {response.status_code}): {response.text[:200]}"
            ) from e
        if not isinstance(data, dict):
            raise BackendTransportError(f"Unexpected response from search server: {response.text[:200]}")
        return data

    async def ping(self) -> bool:
        """Check whether the server answers on ``/ping``."""
        address = await self.wait_for_address(self.startup_timeout)
        async with httpx.AsyncClient(transport=self._transport, timeout=self.request_timeout) as client:
            try:
                response = await client.get(f"http://{address}/ping")
            except Exception as e:
                logger.warning(f"Ping to search server failed: {type(e).__name__}: {e}")
                return False
        return response.status_code == 200

    def stop(self):
        """Terminate the server. Further calls do nothing."""
        if self.state is BackendState.CLOSED:
            return
        previous = self.state
        self.state = BackendState.CLOSED
        if self._started is not None and not self._started.done():
            self._started.set_result(
                Failed(exit_code=self.exit_code, stderr=self.stderr, stdout=self.stdout, reason="Search server was stopped")
            )
        self._terminate()
        logger.info(f"Search server stopped (was {previous.value})")

    async def aclose(self):
        """Stop the server and wait for the output readers to finish."""
        self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _terminate(self):
        if self._process is not None and self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass

    async def _read_stdout(self):
        stream = self._process.stdout
        try:
            first = await stream.readline()
        except (ValueError, asyncio.LimitOverrunError) as e:
            logger.error(f"Search server announcement is too long: {e}")
            self._reject_announcement(f"Address announcement is too long: {e}")
            first = b""
        if first:
            text = first.decode(errors="replace")
            self.stdout += text
            self._on_announcement(text)
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self.stdout += chunk.decode(errors="replace")

    async def _read_stderr(self):
        stream = self._process.stderr
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self.stderr += chunk.decode(errors="replace")

    async def _watch_exit(self, *readers: asyncio.Task):
        code = await self._process.wait()
        await asyncio.gather(*readers, return_exceptions=True)
        self.exit_code = code
        logger.info(f"Search server exited with code {code}")

        if self.state is BackendState.CLOSED:
            return
        if code != 0:
            self._fail(Failed(exit_code=code, stderr=self.stderr, stdout=self.stdout))
            return

        self.state = BackendState.CLOSED
        if self._started is not None and not self._started.done():
            self._started.set_result(
                Failed(exit_code=code, stderr=self.stderr, stdout=self.stdout,
                       reason="Search server exited before announcing its address")
            )

    def _on_announcement(self, line: str):
        if self.state is not BackendState.STARTING:
            return
        address = parse_address(line)
        if address is None:
            logger.error(f"Unexpected search server announcement: {line.strip()!r}")
            self._reject_announcement(f"Unexpected address announcement: {line.strip()!r}")
            return
        self.address = address
        self.state = BackendState.LISTENING
        logger.info(f"Search server listening on {address}")
        if not self._started.done():
            self._started.set_result(Listening(address))

    def _reject_announcement(self, reason: str):
        if self.state is not BackendState.STARTING:
            return
        self._fail(Failed(exit_code=None, stderr=self.stderr, stdout=self.stdout, reason=reason))
        self._terminate()

    def _fail(self, failure: Failed):
        was_listening = self.state is BackendState.LISTENING
        self.state = BackendState.FAILED
        if self._started is not None and not self._started.done():
            self._started.set_result(failure)
        # Startup failures are reported through wait_started() instead.
        if was_listening:
            for callback in self._exit_listeners:
                callback(failure)
