import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from prompt_architect.data.constants import ImageSlot, UserMessages
from prompt_architect.dto.images import UploadedImage
from prompt_architect.exceptions import (
    MissingImagesError,
    NoImageProducedError,
    NoResultError,
    OperationInFlightError,
    ServiceUnavailableError,
    UnknownProposalError,
)
from prompt_architect.services.clients.google_ai_client import GeneratedImage
from prompt_architect.services.workflow import WorkflowController
from prompt_architect.states.workflow import WorkflowState

from .conftest import PREVIEW_BYTES, hold_until, png_bytes


async def _with_results(controller, portrait, product):
    controller.upload(ImageSlot.PORTRAIT, portrait)
    controller.upload(ImageSlot.PRODUCT, product)
    await controller.request_optimize()
    await controller.wait_idle()
    return controller.result


class TestUploads:

    def test_starts_empty(self, controller):
        snapshot = controller.snapshot()
        assert snapshot.state is WorkflowState.EMPTY
        assert snapshot.result is None
        assert snapshot.error is None

    def test_one_image_is_not_ready(self, controller, portrait):
        snapshot = controller.upload(ImageSlot.PORTRAIT, portrait)
        assert snapshot.state is WorkflowState.EMPTY
        assert snapshot.has_portrait and not snapshot.has_product

    def test_both_images_make_ready(self, controller, portrait, product):
        controller.upload(ImageSlot.PORTRAIT, portrait)
        snapshot = controller.upload(ImageSlot.PRODUCT, product)
        assert snapshot.state is WorkflowState.READY
        assert snapshot.portrait_image == portrait.data_uri

    async def test_upload_clears_result_and_error(self, controller, portrait, product):
        await _with_results(controller, portrait, product)
        assert controller.state is WorkflowState.HAS_RESULTS

        replacement = UploadedImage.from_bytes(png_bytes("green"), "image/png")
        snapshot = controller.upload(ImageSlot.PRODUCT, replacement)

        assert snapshot.state is WorkflowState.READY
        assert snapshot.result is None
        assert snapshot.product_image == replacement.data_uri


class TestOptimize:

    async def test_success_yields_four_proposals(self, controller, fake_client, portrait, product):
        result = await _with_results(controller, portrait, product)

        fake_client.structured.generate.assert_awaited_once()
        assert controller.state is WorkflowState.HAS_RESULTS
        assert [p.title for p in result.optimized_prompts] == ["T1", "T2", "T3", "T4"]
        assert result.original_image == portrait.data_uri
        assert result.generated_image is None
        assert controller.error is None

    async def test_state_is_optimizing_while_in_flight(
        self, controller, fake_client, gate, portrait, product
    ):
        fake_client.structured.generate = AsyncMock(
            side_effect=hold_until(gate, fake_client.structured.generate.return_value)
        )
        controller.upload(ImageSlot.PORTRAIT, portrait)
        controller.upload(ImageSlot.PRODUCT, product)

        snapshot = await controller.request_optimize()

        assert snapshot.state is WorkflowState.OPTIMIZING
        assert snapshot.is_optimizing
        gate.set()
        await controller.wait_idle()
        assert controller.state is WorkflowState.HAS_RESULTS

    @pytest.mark.parametrize("slot", [None, ImageSlot.PORTRAIT, ImageSlot.PRODUCT])
    async def test_missing_images_make_no_call(self, controller, fake_client, portrait, slot):
        if slot is not None:
            controller.upload(slot, portrait)

        with pytest.raises(MissingImagesError):
            await controller.request_optimize()

        fake_client.structured.generate.assert_not_awaited()
        snapshot = controller.snapshot()
        assert snapshot.error == "Please upload both a model portrait and a product image."
        assert snapshot.result is None
        assert not snapshot.is_optimizing

    @pytest.mark.parametrize("payload", ["", "not json", "[]", '[{"title": "T1"}]'])
    async def test_bad_payload_sets_generic_error(
        self, controller, fake_client, portrait, product, payload
    ):
        fake_client.structured.generate = AsyncMock(return_value=payload)

        await _with_results(controller, portrait, product)

        assert controller.result is None
        assert controller.error == UserMessages.OPTIMIZATION_FAILED
        assert controller.state is WorkflowState.READY

    async def test_failure_keeps_previous_result(self, controller, fake_client, portrait, product):
        previous = await _with_results(controller, portrait, product)
        fake_client.structured.generate = AsyncMock(side_effect=ConnectionError("offline"))

        await controller.request_optimize()
        await controller.wait_idle()

        assert controller.result is previous
        assert controller.error == UserMessages.OPTIMIZATION_FAILED

    async def test_second_optimize_while_in_flight_is_rejected(
        self, controller, fake_client, gate, portrait, product
    ):
        fake_client.structured.generate = AsyncMock(
            side_effect=hold_until(gate, fake_client.structured.generate.return_value)
        )
        controller.upload(ImageSlot.PORTRAIT, portrait)
        controller.upload(ImageSlot.PRODUCT, product)
        await controller.request_optimize()

        with pytest.raises(OperationInFlightError):
            await controller.request_optimize()

        gate.set()
        await controller.wait_idle()
        assert fake_client.structured.generate.await_count == 1

    async def test_upload_during_optimize_discards_stale_result(
        self, controller, fake_client, gate, portrait, product
    ):
        fake_client.structured.generate = AsyncMock(
            side_effect=hold_until(gate, fake_client.structured.generate.return_value)
        )
        controller.upload(ImageSlot.PORTRAIT, portrait)
        controller.upload(ImageSlot.PRODUCT, product)
        await controller.request_optimize()

        controller.upload(ImageSlot.PORTRAIT, UploadedImage.from_bytes(png_bytes("white")))
        gate.set()
        await controller.wait_idle()

        assert controller.result is None
        assert controller.state is WorkflowState.READY


class TestPreview:

    async def test_scenario_preview_for_second_proposal(
        self, controller, fake_client, portrait, product
    ):
        result = await _with_results(controller, portrait, product)
        t2 = result.optimized_prompts[1]
        original_prompts = [p.model_copy() for p in result.optimized_prompts]

        snapshot = await controller.request_preview(t2.id)
        assert snapshot.state is WorkflowState.GENERATING_PREVIEW
        assert snapshot.generating_proposal_id == t2.id
        await controller.wait_idle()

        kwargs = fake_client.images.generate.await_args.kwargs
        assert kwargs["prompt"] == t2.prompt
        assert kwargs["images"][0].data_uri == portrait.data_uri

        updated = controller.result
        encoded = base64.b64encode(PREVIEW_BYTES).decode()
        assert updated.generated_image == f"data:image/png;base64,{encoded}"
        assert updated.preview_proposal_id == t2.id
        assert updated.optimized_prompts == original_prompts
        assert controller.state is WorkflowState.HAS_PREVIEW

    async def test_preview_can_be_retriggered_for_another_proposal(
        self, controller, fake_client, portrait, product
    ):
        result = await _with_results(controller, portrait, product)
        await controller.request_preview(result.optimized_prompts[0].id)
        await controller.wait_idle()

        fake_client.images.generate = AsyncMock(
            return_value=GeneratedImage(image_bytes=b"other", content_type="image/jpeg")
        )
        await controller.request_preview(result.optimized_prompts[3].id)
        await controller.wait_idle()

        assert controller.result.generated_image == "data:image/jpeg;base64,b3RoZXI="
        assert controller.result.preview_proposal_id == result.optimized_prompts[3].id

    async def test_second_preview_while_in_flight_is_rejected(
        self, controller, fake_client, gate, portrait, product
    ):
        result = await _with_results(controller, portrait, product)
        fake_client.images.generate = AsyncMock(
            side_effect=hold_until(gate, fake_client.images.generate.return_value)
        )
        first, second = result.optimized_prompts[0], result.optimized_prompts[1]

        await controller.request_preview(first.id)
        with pytest.raises(OperationInFlightError):
            await controller.request_preview(second.id)
        with pytest.raises(OperationInFlightError):
            await controller.request_optimize()

        gate.set()
        await controller.wait_idle()
        assert fake_client.images.generate.await_count == 1
        assert controller.result.preview_proposal_id == first.id

    async def test_no_image_produced_sets_generic_error(
        self, controller, fake_client, portrait, product
    ):
        result = await _with_results(controller, portrait, product)
        fake_client.images.generate = AsyncMock(side_effect=NoImageProducedError("text only"))

        await controller.request_preview(result.optimized_prompts[0].id)
        await controller.wait_idle()

        assert controller.error == UserMessages.PREVIEW_FAILED
        assert controller.result.generated_image is None
        assert len(controller.result.optimized_prompts) == 4
        assert controller.state is WorkflowState.HAS_RESULTS

    async def test_preview_without_result(self, controller):
        with pytest.raises(NoResultError):
            await controller.request_preview("missing")

    async def test_preview_for_unknown_proposal(self, controller, fake_client, portrait, product):
        await _with_results(controller, portrait, product)

        with pytest.raises(UnknownProposalError):
            await controller.request_preview("not-a-proposal")

        fake_client.images.generate.assert_not_awaited()


class TestCopy:

    async def test_copy_returns_prompt_and_flags_feedback(
        self, controller, portrait, product, monkeypatch
    ):
        monkeypatch.setattr("prompt_architect.services.workflow.COPY_FEEDBACK_SECONDS", 0.01)
        result = await _with_results(controller, portrait, product)
        proposal = result.optimized_prompts[2]

        text = controller.copy_prompt(proposal.id)

        assert text == proposal.prompt
        assert controller.snapshot().copy_feedback == proposal.id
        await asyncio.sleep(0.05)
        assert controller.snapshot().copy_feedback is None

    async def test_copy_unknown_proposal(self, controller, portrait, product):
        await _with_results(controller, portrait, product)
        with pytest.raises(UnknownProposalError):
            controller.copy_prompt("nope")


class TestSchedulerUnavailable:

    async def test_optimize_after_scheduler_closed(
        self, controller, fake_client, scheduler, portrait, product
    ):
        controller.upload(ImageSlot.PORTRAIT, portrait)
        controller.upload(ImageSlot.PRODUCT, product)
        await scheduler.close()

        with pytest.raises(ServiceUnavailableError):
            await controller.request_optimize()

        assert not controller.busy
        assert controller.state is WorkflowState.READY
        fake_client.structured.generate.assert_not_awaited()

    async def test_preview_after_scheduler_closed(self, controller, scheduler, portrait, product):
        result = await _with_results(controller, portrait, product)
        await scheduler.close()

        with pytest.raises(ServiceUnavailableError):
            await controller.request_preview(result.optimized_prompts[0].id)

        assert controller.state is WorkflowState.HAS_RESULTS


class TestFailedSpawn:

    @pytest.fixture
    def broken_scheduler(self) -> MagicMock:
        scheduler = MagicMock(closed=False)
        scheduler.spawn = AsyncMock(side_effect=RuntimeError("Scheduling a new job after closing"))
        return scheduler

    @pytest.fixture
    def stuck_controller(self, controller, broken_scheduler) -> WorkflowController:
        controller._scheduler = broken_scheduler
        return controller

    async def test_optimize_marker_is_released(self, stuck_controller, portrait, product):
        stuck_controller.upload(ImageSlot.PORTRAIT, portrait)
        stuck_controller.upload(ImageSlot.PRODUCT, product)

        with pytest.raises(RuntimeError):
            await stuck_controller.request_optimize()

        assert not stuck_controller.busy
        assert stuck_controller.state is WorkflowState.READY
        with pytest.raises(RuntimeError):
            await stuck_controller.request_optimize()

    async def test_preview_marker_is_released(
        self, controller, scheduler, broken_scheduler, portrait, product
    ):
        result = await _with_results(controller, portrait, product)
        controller._scheduler = broken_scheduler

        with pytest.raises(RuntimeError):
            await controller.request_preview(result.optimized_prompts[0].id)

        snapshot = controller.snapshot()
        assert snapshot.generating_proposal_id is None
        assert snapshot.state is WorkflowState.HAS_RESULTS

        controller._scheduler = scheduler
        await controller.request_preview(result.optimized_prompts[0].id)
        await controller.wait_idle()
        assert controller.state is WorkflowState.HAS_PREVIEW
