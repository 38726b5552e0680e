import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import update

from src.exceptions import LLMServiceError, ValidationError
from src.models import FetchedItem, FetchedItemStatus
from src.pipeline.generation import GenerationOrchestrator
from tests.conftest import VALID_REPLY


@pytest.fixture
def orchestrator(test_db, mock_llm_service, pipeline_settings):
    return GenerationOrchestrator(test_db, mock_llm_service, pipeline_settings)


def reload(test_db, item_id):
    test_db.expire_all()
    return test_db.get(FetchedItem, item_id)


class TestGenerateSingle:
    @pytest.mark.asyncio
    async def test_success_moves_item_to_approved(self, test_db, orchestrator, make_item):
        item = make_item()

        assert await orchestrator.generate_single(item.id) is True

        item = reload(test_db, item.id)
        assert item.status == FetchedItemStatus.APPROVED
        assert item.generated_title == "OpenAI 發表新模型"
        assert item.generated_excerpt == "這是一篇關於新模型的摘要。"
        assert item.generated_content.startswith("# OpenAI 發表新模型")
        assert "分析師認為" in item.generated_content
        assert item.processed_at is not None

    @pytest.mark.asyncio
    async def test_prompt_carries_source_and_settings(self, orchestrator, mock_llm_service, make_item, pipeline_settings):
        item = make_item(title="Anthropic raises funding")

        await orchestrator.generate_single(item.id)

        messages = mock_llm_service.generate.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert pipeline_settings.generation_language in messages[0]["content"]
        assert "[Source: AI Feed]" in messages[1]["content"]
        assert "Title: Anthropic raises funding" in messages[1]["content"]
        assert mock_llm_service.generate.call_args.kwargs == {
            "temperature": pipeline_settings.generation_temperature,
            "max_tokens": pipeline_settings.generation_max_tokens,
        }

    @pytest.mark.asyncio
    async def test_provider_failure_returns_item_to_pending(self, test_db, orchestrator, mock_llm_service, make_item):
        item = make_item()
        mock_llm_service.generate.side_effect = LLMServiceError("All LLM providers failed")

        assert await orchestrator.generate_single(item.id) is False

        item = reload(test_db, item.id)
        assert item.status == FetchedItemStatus.PENDING
        assert item.generated_title is None
        assert item.generated_content is None
        assert item.processed_at is None

    @pytest.mark.asyncio
    async def test_empty_reply_is_a_failure(self, test_db, orchestrator, mock_llm_service, make_item):
        item = make_item()
        mock_llm_service.generate.return_value = "   "

        assert await orchestrator.generate_single(item.id) is False
        assert reload(test_db, item.id).status == FetchedItemStatus.PENDING

    @pytest.mark.asyncio
    async def test_reply_without_body_is_a_failure(self, test_db, orchestrator, mock_llm_service, make_item):
        item = make_item()
        mock_llm_service.generate.return_value = "---\nTitle: Heading only\nExcerpt: Nothing else\n---\n"

        assert await orchestrator.generate_single(item.id) is False
        assert reload(test_db, item.id).status == FetchedItemStatus.PENDING

    @pytest.mark.asyncio
    async def test_provider_timeout_is_a_failure(self, test_db, orchestrator, mock_llm_service, make_item, pipeline_settings):
        item = make_item()
        pipeline_settings.generation_timeout_seconds = 0.1

        async def hang(*args, **kwargs):
            await asyncio.sleep(5)
            return VALID_REPLY

        mock_llm_service.generate.side_effect = hang

        assert await orchestrator.generate_single(item.id) is False
        assert reload(test_db, item.id).status == FetchedItemStatus.PENDING

    @pytest.mark.asyncio
    async def test_only_pending_items_are_claimed(self, test_db, orchestrator, mock_llm_service, make_item):
        item = make_item(status=FetchedItemStatus.APPROVED)

        assert await orchestrator.generate_single(item.id) is False

        mock_llm_service.generate.assert_not_called()
        assert reload(test_db, item.id).generated_title == f"Generated title {item.id}"

    @pytest.mark.asyncio
    async def test_missing_item(self, orchestrator, mock_llm_service):
        assert await orchestrator.generate_single(404) is False
        mock_llm_service.generate.assert_not_called()


class TestProcessPending:
    @pytest.mark.asyncio
    async def test_limit_picks_the_oldest_pending_items(self, test_db, orchestrator, make_item):
        # Newest first by id, so fetched_at ordering is what matters
        items = [make_item(fetched_offset_minutes=offset) for offset in (50, 40, 30, 20, 10)]

        summary = await orchestrator.process_pending(2)

        assert summary.model_dump() == {"processed": 2, "errors": 0}
        statuses = {item.id: reload(test_db, item.id).status for item in items}
        assert statuses[items[4].id] == FetchedItemStatus.APPROVED
        assert statuses[items[3].id] == FetchedItemStatus.APPROVED
        assert [statuses[item.id] for item in items[:3]] == [FetchedItemStatus.PENDING] * 3

    @pytest.mark.asyncio
    async def test_failures_are_counted_and_do_not_abort(self, test_db, orchestrator, mock_llm_service, make_item):
        first = make_item()
        second = make_item()
        mock_llm_service.generate.side_effect = [LLMServiceError("rate limited"), VALID_REPLY]

        summary = await orchestrator.process_pending(5)

        assert summary.model_dump() == {"processed": 1, "errors": 1}
        assert reload(test_db, first.id).status == FetchedItemStatus.PENDING
        assert reload(test_db, second.id).status == FetchedItemStatus.APPROVED

    @pytest.mark.asyncio
    async def test_non_pending_items_are_ignored(self, orchestrator, mock_llm_service, make_item):
        make_item(status=FetchedItemStatus.APPROVED)
        make_item(status=FetchedItemStatus.REJECTED, generated=False)

        summary = await orchestrator.process_pending(5)

        assert summary.model_dump() == {"processed": 0, "errors": 0}
        mock_llm_service.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_default_limit_comes_from_settings(self, orchestrator, make_item, pipeline_settings):
        pipeline_settings.generation_batch_size = 1
        make_item()
        make_item()

        summary = await orchestrator.process_pending()

        assert summary.processed == 1


class TestGenerateCombined:
    @pytest.mark.asyncio
    async def test_primary_approved_and_rest_absorbed(self, test_db, orchestrator, mock_llm_service, make_item):
        first = make_item(title="Alpha story")
        second = make_item(title="Beta story")
        third = make_item(title="Gamma story")

        primary_id = await orchestrator.generate_combined([third.id, first.id, second.id])

        assert primary_id == third.id
        assert mock_llm_service.generate.await_count == 1

        prompt = mock_llm_service.generate.call_args.args[0][1]["content"]
        assert prompt.index("Gamma story") < prompt.index("Alpha story") < prompt.index("Beta story")

        primary = reload(test_db, third.id)
        assert primary.status == FetchedItemStatus.APPROVED
        assert primary.generated_title == "OpenAI 發表新模型"

        for item_id in (first.id, second.id):
            absorbed = reload(test_db, item_id)
            assert absorbed.status == FetchedItemStatus.ABSORBED
            assert absorbed.generated_content is None
            assert absorbed.processed_at is not None
            assert absorbed.post_id is None

    @pytest.mark.asyncio
    async def test_failure_rolls_every_item_back(self, test_db, orchestrator, mock_llm_service, make_item):
        items = [make_item() for _ in range(3)]
        mock_llm_service.generate.side_effect = LLMServiceError("boom")

        assert await orchestrator.generate_combined([item.id for item in items]) is None

        for item in items:
            assert reload(test_db, item.id).status == FetchedItemStatus.PENDING

    @pytest.mark.asyncio
    async def test_lost_primary_frees_the_absorbed_items(self, test_db, orchestrator, mock_llm_service, make_item):
        primary, *others = [make_item() for _ in range(3)]

        async def reply_after_primary_is_rejected(*args, **kwargs):
            # Another writer moves the primary while generation is in flight
            test_db.execute(
                update(FetchedItem)
                .where(FetchedItem.id == primary.id)
                .values(status=FetchedItemStatus.REJECTED)
                .execution_options(synchronize_session=False)
            )
            test_db.commit()
            return VALID_REPLY

        mock_llm_service.generate.side_effect = reply_after_primary_is_rejected

        assert await orchestrator.generate_combined([primary.id] + [item.id for item in others]) is None

        assert reload(test_db, primary.id).status == FetchedItemStatus.REJECTED
        for item in others:
            released = reload(test_db, item.id)
            assert released.status == FetchedItemStatus.PENDING
            assert released.generated_content is None

    @pytest.mark.asyncio
    async def test_unclaimable_ids_are_dropped(self, test_db, orchestrator, make_item):
        approved = make_item(status=FetchedItemStatus.APPROVED)
        pending = make_item()

        primary_id = await orchestrator.generate_combined([approved.id, pending.id, 999])

        assert primary_id == pending.id
        assert reload(test_db, approved.id).status == FetchedItemStatus.APPROVED

    @pytest.mark.asyncio
    async def test_nothing_claimable_returns_none(self, orchestrator, mock_llm_service, make_item):
        approved = make_item(status=FetchedItemStatus.APPROVED)

        assert await orchestrator.generate_combined([approved.id]) is None
        mock_llm_service.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_at_least_one_id(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.generate_combined([])

    @pytest.mark.asyncio
    async def test_generation_uses_the_llm_service_once_per_call(self, orchestrator, mock_llm_service, make_item):
        mock_llm_service.generate = AsyncMock(return_value=VALID_REPLY)
        items = [make_item(), make_item()]

        await orchestrator.generate_combined([item.id for item in items])

        mock_llm_service.generate.assert_awaited_once()
