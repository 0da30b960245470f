"""
Render Orchestrator
===================

Runs one render subprocess per graph request. The job is written to the
subprocess's stdin as a single JSON object and stdin is closed; stdout is
collected into a bounded buffer while stderr is logged line by line. Exit code 0
means the buffer holds the JSON result; anything else is a failure.

The exchange is bounded in time and output size, and the number of concurrent
subprocesses is capped by a semaphore. A subprocess that breaches either bound is
killed and reaped before the error is raised.
"""

import asyncio
import json
from typing import Any, List, Optional, Tuple

from rugplay_gateway.config.logging import get_logger
from rugplay_gateway.config.settings import Settings
from rugplay_gateway.models.schemas import RenderJob, RenderState

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class RenderError(Exception):
    """Base exception for failed render jobs."""

    status_code = 500
    public_message = "Graph generation failed"


class RenderProcessError(RenderError):
    """Subprocess could not be started or exited with a non-zero code."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class RenderOutputError(RenderError):
    """Subprocess exited 0 but its output is not valid JSON."""

    public_message = "Failed to process graph data"


class RenderOutputTooLargeError(RenderError):
    """Subprocess wrote more than the configured output limit."""

    public_message = "Graph output exceeded size limit"


class RenderTimeoutError(RenderError):
    """Subprocess did not finish within the configured timeout."""

    status_code = 504
    public_message = "Graph generation timed out"


class RenderOrchestrator:
    """Spawn render subprocesses and interpret their output."""

    def __init__(self, settings: Settings):
        self.command: List[str] = list(settings.render_command)
        self.timeout = settings.render_timeout
        self.max_output_bytes = settings.render_max_output_bytes
        self.max_concurrency = settings.max_concurrent_renders
        self.logger: Any = logger.bind(component="render_orchestrator")
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._in_flight = 0

    @property
    def available_slots(self) -> int:
        return self.max_concurrency - self._in_flight

    async def render(self, job: RenderJob) -> Any:
        """
        Run one render job to completion.

        Args:
            job: Render job whose payload is sent on stdin

        Returns:
            JSON value parsed from the subprocess's stdout

        Raises:
            RenderProcessError: Spawn failure or non-zero exit code
            RenderOutputError: Exit code 0 with output that is not JSON
            RenderOutputTooLargeError: Output exceeded the size limit
            RenderTimeoutError: Subprocess did not exit in time
        """
        payload = json.dumps(job.payload).encode("utf-8")

        async with self._semaphore:
            self._in_flight += 1
            try:
                process, output, log = await self._run(job, payload)
            finally:
                self._in_flight -= 1

        exit_code = process.returncode
        log.info("Render state", state=RenderState.EXITED.value, exit_code=exit_code)

        if exit_code != 0:
            log.error("Render subprocess exited with error", exit_code=exit_code)
            raise RenderProcessError(f"Render subprocess exited with code {exit_code}", exit_code)

        try:
            graph_data = json.loads(output.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            log.error("Failed to parse render output", error=str(e), output_size=len(output))
            raise RenderOutputError(f"Render output is not valid JSON: {e}") from e

        log.debug("Render output parsed", output_size=len(output))
        return graph_data

    async def _run(
        self, job: RenderJob, payload: bytes
    ) -> Tuple[asyncio.subprocess.Process, bytes, Any]:
        process = await self._spawn(job)
        log = self.logger.bind(pid=process.pid, coin=job.coin)

        try:
            output = await asyncio.wait_for(
                self._exchange(process, payload, log), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            log.error("Render subprocess timed out", timeout=self.timeout)
            await self._terminate(process, log)
            raise RenderTimeoutError(f"Render subprocess exceeded {self.timeout}s")
        except RenderOutputTooLargeError:
            log.error("Render output exceeded limit", limit=self.max_output_bytes)
            await self._terminate(process, log)
            raise
        return process, output, log

    async def _spawn(self, job: RenderJob) -> asyncio.subprocess.Process:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.logger.error("Failed to start render subprocess", command=self.command, error=str(e))
            raise RenderProcessError(f"Failed to start render subprocess: {e}") from e

        self.logger.info(
            "Render state", state=RenderState.SPAWNED.value, pid=process.pid, coin=job.coin
        )
        return process

    async def _exchange(
        self, process: asyncio.subprocess.Process, payload: bytes, log: Any
    ) -> bytes:
        """Feed stdin, drain stdout and stderr, then wait for exit."""
        tasks = [
            asyncio.ensure_future(self._send_input(process, payload, log)),
            asyncio.ensure_future(self._collect_output(process, log)),
            asyncio.ensure_future(self._log_diagnostics(process, log)),
        ]
        try:
            _, output, _ = await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        await process.wait()
        return output

    async def _send_input(
        self, process: asyncio.subprocess.Process, payload: bytes, log: Any
    ) -> None:
        assert process.stdin is not None
        try:
            process.stdin.write(payload)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # The exit code decides the outcome.
            log.warning("Render subprocess closed stdin early", payload_size=len(payload))
        finally:
            process.stdin.close()
        log.debug("Render state", state=RenderState.INPUT_SENT.value, payload_size=len(payload))

    async def _collect_output(self, process: asyncio.subprocess.Process, log: Any) -> bytes:
        assert process.stdout is not None
        log.debug("Render state", state=RenderState.COLLECTING.value)
        buffer = bytearray()
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            if len(buffer) + len(chunk) > self.max_output_bytes:
                raise RenderOutputTooLargeError(
                    f"Render output exceeded {self.max_output_bytes} bytes"
                )
            buffer.extend(chunk)
        return bytes(buffer)

    async def _log_diagnostics(self, process: asyncio.subprocess.Process, log: Any) -> None:
        assert process.stderr is not None
        while True:
            chunk = await process.stderr.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for line in chunk.decode("utf-8", "replace").splitlines():
                if line.strip():
                    log.warning("Render subprocess stderr", line=line)

    async def _terminate(self, process: asyncio.subprocess.Process, log: Any) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        log.info("Render subprocess terminated", exit_code=process.returncode)
