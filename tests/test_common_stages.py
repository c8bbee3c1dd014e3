"""Tests for the reusable CancellationStage, ValidationStage, TransformStage and TimingStage."""

import pytest

from conftest import RecordingStage
from domain_pipeline.pipeline.base import Pipeline
from domain_pipeline.pipeline.cancellation import CancellationToken
from domain_pipeline.pipeline.context import ContextKey, PipelineContext
from domain_pipeline.pipeline.result import Err, ErrorKind, Ok, PipelineError
from domain_pipeline.pipeline.stages.common import (
    STAGE_TIMINGS_METADATA,
    CancellationStage,
    TimingStage,
    TransformStage,
    ValidationStage,
)

UPPER = ContextKey("upper")


class TestCancellationStage:
    @pytest.mark.asyncio
    async def test_active_token_delegates(self, calls):
        result = await Pipeline([CancellationStage(), RecordingStage("a", calls)]).run("req")

        assert result.is_ok
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_cancelled_token_short_circuits(self, calls):
        token = CancellationToken()
        token.cancel("client disconnected")

        result = await Pipeline([CancellationStage(), RecordingStage("a", calls)]).run("req", cancellation=token)

        assert calls == []
        assert result.first.kind is ErrorKind.CANCELLED
        assert "client disconnected" in result.first.description

    @pytest.mark.asyncio
    async def test_cancellation_between_stages(self, calls):
        token = CancellationToken()

        class CancelDuring(RecordingStage):
            async def handle(self, context, next):
                token.cancel("timeout")
                return await super().handle(context, next)

        pipeline = Pipeline([CancelDuring("first", calls), CancellationStage(), RecordingStage("second", calls)])

        result = await pipeline.run("req", cancellation=token)

        assert calls == ["first"]
        assert isinstance(result, Err)


class TestValidationStage:
    @pytest.mark.asyncio
    async def test_reports_all_errors(self, calls):
        def validate(context):
            if not context.request.get("name"):
                yield PipelineError.validation("name.required", "Name is required")
            if context.request.get("age", 0) < 0:
                yield PipelineError.validation("age.negative", "Age must be positive")

        pipeline = Pipeline([ValidationStage(validate), RecordingStage("after", calls)])

        result = await pipeline.run({"age": -1})

        assert [e.code for e in result.errors] == ["name.required", "age.negative"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_valid_request_delegates(self, calls):
        pipeline = Pipeline([ValidationStage(lambda ctx: []), RecordingStage("after", calls)])

        assert (await pipeline.run({})).is_ok
        assert calls == ["after"]

    def test_name_defaults_to_validator_name(self):
        def check_user(context):
            return []

        assert ValidationStage(check_user).name == "check_user"


class TestTransformStage:
    @pytest.mark.asyncio
    async def test_transform_result_is_passed_on(self):
        pipeline = Pipeline([TransformStage(lambda ctx: ctx.set(UPPER, ctx.request.upper()))])

        result = await pipeline.run("abc")

        assert result.context.get(UPPER) == "ABC"

    @pytest.mark.asyncio
    async def test_transform_can_short_circuit(self, calls):
        stop = Err.of(PipelineError.not_found("none", "No data found"))
        pipeline = Pipeline([TransformStage(lambda ctx: stop), RecordingStage("after", calls)])

        assert await pipeline.run("abc") is stop
        assert calls == []


class TestTimingStage:
    @pytest.mark.asyncio
    async def test_records_elapsed_time_on_success(self, calls):
        result = await Pipeline([TimingStage("outer"), RecordingStage("a", calls)]).run("req")

        timings = result.context.get_metadata(STAGE_TIMINGS_METADATA)
        assert set(timings) == {"outer"}
        assert timings["outer"] >= 0

    @pytest.mark.asyncio
    async def test_passes_errors_through(self):
        stop = Err.of(PipelineError.validation("bad", "Bad request"))

        result = await Pipeline([TimingStage(), TransformStage(lambda ctx: stop)]).run("req")

        assert result is stop

    def test_name_includes_label(self):
        assert TimingStage("forecast").name == "Timing[forecast]"


class TestCancellationToken:
    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")

        assert token.is_cancelled
        assert token.reason == "first"
        assert "first" in repr(token)

    def test_seeded_context_tokens_are_independent(self):
        a = PipelineContext.seed(1)
        b = PipelineContext.seed(2)
        a.cancellation.cancel()

        assert not b.cancellation.is_cancelled
