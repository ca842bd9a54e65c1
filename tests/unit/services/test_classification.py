"""
Tests for the oracle-backed classification service.
"""
import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest

from fixdesk.domains import (
    CommunityContext,
    Fallback,
    Parsed,
    Technician,
    Ticket,
    TicketDraft,
)
from fixdesk.services.classification import ClassificationService


@pytest.fixture
def draft():
    return TicketDraft(
        title="Leaking pipe",
        description="Water dripping from the pipe under the kitchen sink",
        reported_by="resident-1",
        category="maintenance",
        location="Block A, Flat 12",
        community_id="community-1",
    )


@pytest.fixture
def context():
    return CommunityContext(
        recent_tickets=[
            Ticket(
                id="existing-1",
                title="Kitchen leak",
                description="Pipe leaking in flat 12",
                reported_by="resident-2",
                community_id="community-1",
                category="plumbing",
                location="Block A, Flat 12",
            )
        ],
        technicians=[
            Technician(id="tech-1", name="Asha", expertise=["plumbing"]),
            Technician(id="tech-2", name="Ravi", expertise=["electrical"]),
        ],
    )


@pytest.fixture
def oracle_answer():
    return {
        "predictedCategory": "plumbing",
        "predictedUrgency": "high",
        "confidence": 0.92,
        "isSpam": False,
        "spamConfidence": 0.05,
        "spamReason": "",
        "similarTickets": ["existing-1"],
        "shouldMerge": True,
        "mergeWithTicketId": "existing-1",
        "recommendedTechnician": {
            "id": "tech-1",
            "name": "Wrong Name",
            "skillMatch": 0.9,
            "locationMatch": 0.8,
            "reasoning": "Plumber",
        },
        "alternativeTechnicians": [{"id": "ghost", "skillMatch": 0.5}],
        "requiredTools": [
            {"name": "Pipe Wrench", "estimated_cost": "$15-25", "required": True}
        ],
        "requiredMaterials": [],
        "estimatedDuration": "2 hours",
        "difficultyLevel": "easy",
        "reasoning": "Looks like a duplicate",
    }


def _service(llm, timeout=5.0):
    return ClassificationService(llm_provider=llm, timeout=timeout)


def _llm(text=None, side_effect=None):
    llm = Mock()
    llm.generate_text = AsyncMock(return_value=text, side_effect=side_effect)
    llm.generate_text_with_images = AsyncMock(return_value=text, side_effect=side_effect)
    return llm


async def _never_answers(*args, **kwargs):
    await asyncio.sleep(60)
    return "{}"


class TestParsing:
    """Decoding of well-formed and malformed oracle answers."""

    @pytest.mark.asyncio
    async def test_fenced_json_is_parsed(self, draft, context, oracle_answer):
        text = "```json\n" + json.dumps(oracle_answer) + "\n```"
        outcome = await _service(_llm(text)).classify(draft, context)

        assert isinstance(outcome, Parsed)
        result = outcome.result
        assert result.predicted_category == "plumbing"
        assert result.predicted_urgency == "high"
        assert result.should_merge is True
        assert result.merge_target_id == "existing-1"
        assert result.required_tools[0].name == "Pipe Wrench"
        assert result.difficulty_level == "easy"

    @pytest.mark.asyncio
    async def test_recommendations_are_checked_against_roster(self, draft, context, oracle_answer):
        outcome = await _service(_llm(json.dumps(oracle_answer))).classify(draft, context)

        assert outcome.result.recommended_technician.id == "tech-1"
        assert outcome.result.recommended_technician.name == "Asha"
        assert outcome.result.recommended_technician.skill_match == 0.9
        assert outcome.result.alternative_technicians == []

    @pytest.mark.asyncio
    async def test_unknown_recommended_technician_is_dropped(self, draft, context, oracle_answer):
        oracle_answer["recommendedTechnician"]["id"] = "invented"
        outcome = await _service(_llm(json.dumps(oracle_answer))).classify(draft, context)

        assert isinstance(outcome, Parsed)
        assert outcome.result.recommended_technician is None

    @pytest.mark.asyncio
    async def test_surrounding_prose_is_ignored(self, draft, context, oracle_answer):
        text = "Here is my analysis:\n" + json.dumps(oracle_answer) + "\nHope it helps."
        outcome = await _service(_llm(text)).classify(draft, context)
        assert isinstance(outcome, Parsed)

    @pytest.mark.asyncio
    async def test_non_json_falls_back(self, draft, context):
        outcome = await _service(_llm("I cannot help with that")).classify(draft, context)

        assert isinstance(outcome, Fallback)
        assert outcome.reason == "no JSON object in oracle response"

    @pytest.mark.asyncio
    async def test_truncated_json_falls_back(self, draft, context, oracle_answer):
        text = json.dumps(oracle_answer)[:-20] + "}"
        outcome = await _service(_llm(text)).classify(draft, context)
        assert isinstance(outcome, Fallback)

    @pytest.mark.asyncio
    async def test_unknown_category_falls_back(self, draft, context, oracle_answer):
        oracle_answer["predictedCategory"] = "roofing"
        outcome = await _service(_llm(json.dumps(oracle_answer))).classify(draft, context)

        assert isinstance(outcome, Fallback)
        assert "failed validation" in outcome.reason

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self, draft, context):
        outcome = await _service(_llm("")).classify(draft, context)
        assert isinstance(outcome, Fallback)
        assert outcome.reason == "empty oracle response"


class TestFailures:
    """The oracle failing in any way yields the fallback result."""

    def _assert_fallback(self, outcome, draft):
        assert isinstance(outcome, Fallback)
        assert outcome.result.predicted_category == draft.category
        assert outcome.result.predicted_urgency == "low"
        assert outcome.result.confidence == 0.0
        assert outcome.result.is_spam is False
        assert outcome.result.should_merge is False
        assert outcome.result.required_tools == []
        assert outcome.result.required_materials == []
        assert outcome.result.difficulty_level == "medium"

    @pytest.mark.asyncio
    async def test_transport_error(self, draft, context):
        llm = _llm(side_effect=RuntimeError("connection reset"))
        outcome = await _service(llm).classify(draft, context)

        self._assert_fallback(outcome, draft)
        assert "connection reset" in outcome.reason

    @pytest.mark.asyncio
    async def test_timeout(self, draft, context):
        llm = _llm(side_effect=_never_answers)
        outcome = await _service(llm, timeout=0.05).classify(draft, context)

        self._assert_fallback(outcome, draft)
        assert "timed out" in outcome.reason

    @pytest.mark.asyncio
    async def test_cancelled_by_caller(self, draft, context):
        llm = _llm(side_effect=_never_answers)
        cancel_event = asyncio.Event()
        cancel_event.set()

        outcome = await _service(llm, timeout=30).classify(
            draft, context, cancel_event=cancel_event
        )

        self._assert_fallback(outcome, draft)
        assert outcome.reason == "oracle call cancelled"

    @pytest.mark.asyncio
    async def test_unset_cancel_event_does_not_interfere(self, draft, context, oracle_answer):
        outcome = await _service(_llm(json.dumps(oracle_answer))).classify(
            draft, context, cancel_event=asyncio.Event()
        )
        assert isinstance(outcome, Parsed)


class TestOracleCall:
    """How the oracle is invoked."""

    @pytest.mark.asyncio
    async def test_images_use_vision_call(self, draft, context, oracle_answer):
        llm = _llm(json.dumps(oracle_answer))
        draft.images = ["https://example.com/leak.jpg"]

        await _service(llm).classify(draft, context)

        llm.generate_text_with_images.assert_awaited_once()
        assert llm.generate_text_with_images.call_args.args[1] == ["https://example.com/leak.jpg"]
        llm.generate_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_only_call(self, draft, context, oracle_answer):
        llm = _llm(json.dumps(oracle_answer))
        await _service(llm).classify(draft, context)

        llm.generate_text.assert_awaited_once()
        llm.generate_text_with_images.assert_not_called()

    def test_prompt_lists_context(self, draft, context):
        prompt = _service(_llm()).build_prompt(draft, context)

        assert "Leaking pipe" in prompt
        assert "ID: existing-1" in prompt
        assert "ID: tech-1" in prompt
        assert "fire_safety" in prompt
        assert '"predictedCategory"' in prompt

    def test_prompt_without_technicians(self, draft):
        prompt = _service(_llm()).build_prompt(draft, CommunityContext())

        assert "No technicians available in this community" in prompt
        assert '"recommendedTechnician": null' in prompt
