"""Tests for the per-user workflow and the concurrent render fan-out"""

import asyncio

import pytest

from conftest import FakeAnalysisClient, FakeGenerationClient
from hairstyle_advisor.errors import (BlockedRequestError, DecodeError, EmptyResponseError,
                                      InvalidTransitionError)
from hairstyle_advisor.models import CutPreference, WorkflowState
from hairstyle_advisor.orchestrator import HairstyleSession


def make_session(sample_analysis, failures=None, analysis_error=None):
    analysis_client = FakeAnalysisClient(analysis=sample_analysis, error=analysis_error)
    generation_client = FakeGenerationClient(failures=failures)
    session = HairstyleSession(analysis_client, generation_client, session_id="s1")
    return session, analysis_client, generation_client


async def wait_for_calls(client, count):
    while len(client.calls) < count:
        await asyncio.sleep(0)


class TestUploadAndAnalyze:

    def test_upload_moves_to_image_uploaded(self, sample_analysis, png_bytes):
        session, _, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")
        assert session.state == WorkflowState.IMAGE_UPLOADED
        assert session.image.content_type == "image/png"

    def test_bad_upload_moves_to_error(self, sample_analysis):
        session, _, _ = make_session(sample_analysis)
        with pytest.raises(DecodeError):
            session.load_image(b"garbage", "image/png")
        assert session.state == WorkflowState.ERROR
        assert session.error
        assert session.image is None

    def test_analysis_success(self, sample_analysis, png_bytes):
        session, analysis_client, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")

        result = asyncio.run(session.analyze())

        assert result == sample_analysis
        assert session.state == WorkflowState.ANALYZED
        assert session.analysis == sample_analysis
        assert analysis_client.calls == 1

    def test_analysis_failure_moves_to_error(self, sample_analysis, png_bytes):
        session, _, _ = make_session(sample_analysis, analysis_error=EmptyResponseError())
        session.load_image(png_bytes, "image/png")

        assert asyncio.run(session.analyze()) is None
        assert session.state == WorkflowState.ERROR
        assert session.error == str(EmptyResponseError())
        assert session.analysis is None

    def test_analyze_without_image_is_rejected(self, sample_analysis):
        session, _, _ = make_session(sample_analysis)
        with pytest.raises(InvalidTransitionError):
            asyncio.run(session.analyze())

    def test_new_upload_resets_previous_results(self, sample_analysis, png_bytes):
        session, _, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")
        asyncio.run(session.analyze())
        asyncio.run(session.select_preference("short"))

        session.load_image(png_bytes, "image/png")

        assert session.state == WorkflowState.IMAGE_UPLOADED
        assert session.analysis is None
        assert session.preference is None
        assert session.outcomes == {}

    def test_reset_during_analysis_ignores_late_result(self, sample_analysis, png_bytes):
        session, analysis_client, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")

        async def scenario():
            analysis_client.gate = asyncio.Event()
            task = asyncio.create_task(session.analyze())
            while analysis_client.calls < 1:
                await asyncio.sleep(0)
            session.reset()
            analysis_client.gate.set()
            await task

        asyncio.run(scenario())
        assert session.state == WorkflowState.INITIAL
        assert session.analysis is None


class TestGenerationFanOut:

    def analyzed_session(self, sample_analysis, png_bytes, failures=None):
        session, analysis_client, generation_client = make_session(sample_analysis, failures)
        session.load_image(png_bytes, "image/png")
        asyncio.run(session.analyze())
        return session, generation_client

    def test_one_call_per_hairstyle(self, sample_analysis, png_bytes):
        session, generation_client = self.analyzed_session(sample_analysis, png_bytes)

        run_id = asyncio.run(session.select_preference("short"))

        assert len(generation_client.calls) == 3
        assert {call["hairstyle_name"] for call in generation_client.calls} == {"Bob", "Pixie", "Layers"}
        for call in generation_client.calls:
            assert call["original_hair_length"] == "Long"
            assert call["preference"] == CutPreference.SHORT
            assert call["request_id"] == run_id
        assert session.state == WorkflowState.COMPLETE
        assert session.preference == CutPreference.SHORT
        assert all(not outcome.is_pending for outcome in session.outcomes.values())

    def test_partial_failure_still_completes(self, sample_analysis, png_bytes):
        """Two renders succeed and one is blocked: Complete with two images and one error"""
        failures = {"Pixie": BlockedRequestError("SAFETY")}
        session, _ = self.analyzed_session(sample_analysis, png_bytes, failures)

        asyncio.run(session.select_preference(CutPreference.SHORT))

        assert session.state == WorkflowState.COMPLETE
        succeeded = [name for name, o in session.outcomes.items() if o.image is not None]
        failed = {name: o.error_message for name, o in session.outcomes.items() if o.error_message}
        assert sorted(succeeded) == ["Bob", "Layers"]
        assert list(failed) == ["Pixie"]
        assert "SAFETY" in failed["Pixie"]

    def test_complete_only_after_all_calls_settle(self, sample_analysis, png_bytes):
        session, generation_client = self.analyzed_session(sample_analysis, png_bytes)

        async def scenario():
            gate = asyncio.Event()
            generation_client.gates[CutPreference.MEDIUM] = gate
            task = asyncio.create_task(session.select_preference("medium"))
            await wait_for_calls(generation_client, 3)

            assert session.state == WorkflowState.GENERATING
            assert all(outcome.is_pending for outcome in session.outcomes.values())

            gate.set()
            await task

        asyncio.run(scenario())
        assert generation_client.settled == 3
        assert session.state == WorkflowState.COMPLETE

    def test_new_preference_discards_previous_batch(self, sample_analysis, png_bytes):
        """Choosing 'short' while 'medium' is in flight keeps only 'short' results"""
        session, generation_client = self.analyzed_session(sample_analysis, png_bytes)

        async def scenario():
            gate = asyncio.Event()
            generation_client.gates[CutPreference.MEDIUM] = gate
            first = asyncio.create_task(session.select_preference("medium"))
            await wait_for_calls(generation_client, 3)

            await session.select_preference("short")
            assert session.state == WorkflowState.COMPLETE

            gate.set()
            await first

        asyncio.run(scenario())
        assert len(generation_client.calls) == 6
        assert session.preference == CutPreference.SHORT
        assert session.state == WorkflowState.COMPLETE
        captions = sorted(outcome.caption for outcome in session.outcomes.values())
        assert captions == ["Bob at short", "Layers at short", "Pixie at short"]

    def test_reset_during_generation_ignores_late_results(self, sample_analysis, png_bytes):
        session, generation_client = self.analyzed_session(sample_analysis, png_bytes)

        async def scenario():
            gate = asyncio.Event()
            generation_client.gates[CutPreference.SHORT] = gate
            task = asyncio.create_task(session.select_preference("short"))
            await wait_for_calls(generation_client, 3)

            session.reset()
            gate.set()
            await task

        asyncio.run(scenario())
        assert generation_client.settled == 3
        assert session.state == WorkflowState.INITIAL
        assert session.outcomes == {}
        assert session.preference is None

    def test_generation_before_analysis_is_rejected(self, sample_analysis, png_bytes):
        session, _, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")
        with pytest.raises(InvalidTransitionError):
            asyncio.run(session.select_preference("short"))

    def test_unknown_preference_is_rejected(self, sample_analysis, png_bytes):
        session, _ = self.analyzed_session(sample_analysis, png_bytes)
        with pytest.raises(ValueError):
            asyncio.run(session.select_preference("buzz cut"))
        assert session.state == WorkflowState.ANALYZED

    def test_start_generation_runs_in_background(self, sample_analysis, png_bytes):
        session, generation_client = self.analyzed_session(sample_analysis, png_bytes)

        async def scenario():
            run_id = session.start_generation("very short")
            assert session.state == WorkflowState.GENERATING
            assert session.run_id == run_id
            while session.state == WorkflowState.GENERATING:
                await asyncio.sleep(0)

        asyncio.run(scenario())
        assert session.state == WorkflowState.COMPLETE
        assert len(generation_client.calls) == 3


class TestSnapshot:

    def test_snapshot_after_generation(self, sample_analysis, png_bytes):
        session, _, _ = make_session(sample_analysis)
        session.load_image(png_bytes, "image/png")
        asyncio.run(session.analyze())
        asyncio.run(session.select_preference("short"))

        snapshot = session.snapshot()

        assert snapshot["state"] == "complete"
        assert snapshot["preference"] == "short"
        assert snapshot["analysis"]["faceShape"] == "Oval"
        assert snapshot["image_url"].startswith("data:image/png;base64,")
        bob = snapshot["generated_images"]["Bob"]
        assert bob["image_url"] == "data:image/png;base64,aW1n"
        assert bob["loading"] is False
        assert bob["error"] is None
