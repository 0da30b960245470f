"""
Unit Tests for Render Orchestrator
==================================

Subprocess exchange against small Python scripts run with the current interpreter.
"""

import asyncio
import time

import pytest

from rugplay_gateway.core.rendering.orchestrator import (
    RenderError,
    RenderOrchestrator,
    RenderOutputError,
    RenderOutputTooLargeError,
    RenderProcessError,
    RenderTimeoutError,
)
from rugplay_gateway.models.schemas import RenderJob

from tests.conftest import build_settings
from tests.utils.mocks import (
    RENDER_CHUNKED,
    RENDER_ECHO,
    RENDER_FAIL,
    RENDER_FLOOD,
    RENDER_HANG,
    RENDER_IGNORES_INPUT,
    RENDER_NOISY,
    RENDER_NOT_JSON,
    RENDER_OK,
    python_command,
)

JOB = RenderJob(payload={"coin": "BTC", "candlestickData": [], "volumeData": [], "timeframe": "1m"})


def orchestrator_for(script: str, **overrides) -> RenderOrchestrator:
    return RenderOrchestrator(build_settings(render_command=python_command(script), **overrides))


class TestRenderErrors:
    """Error taxonomy."""

    def test_public_messages(self):
        assert RenderProcessError("x").public_message == "Graph generation failed"
        assert RenderOutputError("x").public_message == "Failed to process graph data"
        assert RenderOutputTooLargeError("x").public_message == "Graph output exceeded size limit"
        assert RenderTimeoutError("x").public_message == "Graph generation timed out"

    def test_status_codes(self):
        assert RenderProcessError("x").status_code == 500
        assert RenderOutputError("x").status_code == 500
        assert RenderTimeoutError("x").status_code == 504

    def test_all_inherit_render_error(self):
        for cls in (RenderProcessError, RenderOutputError, RenderOutputTooLargeError, RenderTimeoutError):
            assert issubclass(cls, RenderError)


class TestRenderSuccess:
    """Exit code 0 with JSON output."""

    @pytest.mark.asyncio
    async def test_returns_parsed_output(self):
        assert await orchestrator_for(RENDER_OK).render(JOB) == {"a": 1}

    @pytest.mark.asyncio
    async def test_payload_sent_on_stdin(self):
        result = await orchestrator_for(RENDER_ECHO).render(JOB)
        assert result == {"received": JOB.payload}

    @pytest.mark.asyncio
    async def test_stderr_does_not_affect_outcome(self):
        assert await orchestrator_for(RENDER_NOISY).render(JOB) == {"ok": True}

    @pytest.mark.asyncio
    async def test_chunks_concatenated_in_order(self):
        assert await orchestrator_for(RENDER_CHUNKED).render(JOB) == {"series": [1, 2, 3]}

    @pytest.mark.asyncio
    async def test_subprocess_may_ignore_input(self):
        big_job = RenderJob(payload={"blob": "x" * 500000})
        assert await orchestrator_for(RENDER_IGNORES_INPUT).render(big_job) == {"ignored": True}

    @pytest.mark.asyncio
    async def test_large_payload_round_trip(self):
        big_job = RenderJob(payload={"candlestickData": [{"open": i} for i in range(20000)]})
        result = await orchestrator_for(RENDER_ECHO).render(big_job)
        assert len(result["received"]["candlestickData"]) == 20000

    @pytest.mark.asyncio
    async def test_slot_released(self):
        orchestrator = orchestrator_for(RENDER_OK, max_concurrent_renders=2)
        await orchestrator.render(JOB)
        assert orchestrator.available_slots == 2

    @pytest.mark.asyncio
    async def test_slot_held_while_rendering(self):
        orchestrator = orchestrator_for(RENDER_HANG, render_timeout=1.0, max_concurrent_renders=2)
        task = asyncio.create_task(orchestrator.render(JOB))
        await asyncio.sleep(0.3)

        assert orchestrator.available_slots == 1

        with pytest.raises(RenderTimeoutError):
            await task
        assert orchestrator.available_slots == 2

    @pytest.mark.asyncio
    async def test_non_object_payload_forwarded(self):
        result = await orchestrator_for(RENDER_ECHO).render(RenderJob(payload=[1, 2]))
        assert result == {"received": [1, 2]}


class TestRenderFailure:
    """Non-zero exits, malformed output and bounds."""

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        with pytest.raises(RenderProcessError) as exc_info:
            await orchestrator_for(RENDER_FAIL).render(JOB)
        assert exc_info.value.exit_code == 1

    @pytest.mark.asyncio
    async def test_malformed_output(self):
        with pytest.raises(RenderOutputError):
            await orchestrator_for(RENDER_NOT_JSON).render(JOB)

    @pytest.mark.asyncio
    async def test_output_limit(self):
        orchestrator = orchestrator_for(RENDER_FLOOD, render_max_output_bytes=1024)
        with pytest.raises(RenderOutputTooLargeError):
            await orchestrator.render(JOB)
        assert orchestrator.available_slots == orchestrator.max_concurrency

    @pytest.mark.asyncio
    async def test_timeout_kills_subprocess(self):
        orchestrator = orchestrator_for(RENDER_HANG, render_timeout=0.5)
        started = time.monotonic()

        with pytest.raises(RenderTimeoutError):
            await orchestrator.render(JOB)

        assert time.monotonic() - started < 10
        assert orchestrator.available_slots == orchestrator.max_concurrency

    @pytest.mark.asyncio
    async def test_spawn_failure(self):
        orchestrator = RenderOrchestrator(
            build_settings(render_command=["/nonexistent/render-binary"])
        )
        with pytest.raises(RenderProcessError, match="Failed to start"):
            await orchestrator.render(JOB)
        assert orchestrator.available_slots == orchestrator.max_concurrency
