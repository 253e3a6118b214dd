"""Tests for the Gemini-backed catalog generator, with the client faked out."""

import json
from datetime import date
from types import SimpleNamespace

import pytest

from generators import catalog_factory
from models import CorrelationRule, Day, ParticipantRole


def _response(payload, fenced=False):
    text = json.dumps(payload)
    if fenced:
        text = f"```json\n{text}\n```"
    usage = SimpleNamespace(prompt_token_count=1000, candidates_token_count=2000)
    return SimpleNamespace(text=text, usage_metadata=usage)


class FakeModel:
    responses = []

    def __init__(self, model_name):
        self.model_name = model_name
        self.prompts = []

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        return self.responses.pop(0)


@pytest.fixture
def generator(monkeypatch):
    monkeypatch.setattr(catalog_factory.genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(catalog_factory.genai, "GenerativeModel", FakeModel)
    monkeypatch.setattr(catalog_factory.genai, "GenerationConfig", lambda **kwargs: kwargs)
    return catalog_factory.CatalogGenerator(api_key="test-key")


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    with pytest.raises(ValueError):
        catalog_factory.CatalogGenerator()


def test_robust_parse_json(generator):
    assert generator._robust_parse_json("") == []
    assert generator._robust_parse_json("not json at all") == []
    assert generator._robust_parse_json('Sure! Here it is: [{"id": 1}] Enjoy.') == [{"id": 1}]
    assert generator._robust_parse_json('{"activities": [{"id": 2}]}') == [{"id": 2}]
    assert generator._robust_parse_json('{"id": 3}') == [{"id": 3}]


def test_normalize_enum_casing(generator):
    record = generator._normalize({
        "day": "j-1",
        "rule": "requires",
        "role": "membre junior",
        "auto_pick_for_roles": ["oc", "bureau national"],
    })

    assert record["day"] == "J_1"
    assert record["rule"] == "REQUIRES"
    assert record["role"] == "MEMBRE_JUNIOR"
    assert record["auto_pick_for_roles"] == ["OC", "BUREAU_NATIONAL"]


def test_generate_catalog_keeps_only_consistent_records(generator):
    types = [
        {"id": 1, "name": "Workshops", "day": "J_1"},
        {"id": 2, "name": "Plenary", "day": "j_2"},
        {"id": 1, "name": "Duplicate", "day": "J_2"},
    ]
    activities = [
        {"id": 1, "name": "Pitch", "start_time": "2026-02-20T09:00:00", "end_time": "2026-02-20T10:00:00",
         "activity_type_id": 1, "day": "j_1", "capacity": 40},
        {"id": 2, "name": "Closing", "start_time": "2026-02-21T16:00:00", "end_time": "2026-02-21T17:00:00",
         "activity_type_id": 2, "day": "J_2", "capacity": 300, "is_required": True},
        # Day does not match its type
        {"id": 3, "name": "Misplaced", "start_time": "2026-02-20T11:00:00", "end_time": "2026-02-20T12:00:00",
         "activity_type_id": 2, "day": "J_1"},
        # Ends before it starts
        {"id": 4, "name": "Broken", "start_time": "2026-02-20T12:00:00", "end_time": "2026-02-20T11:00:00",
         "activity_type_id": 1, "day": "J_1"},
        "noise",
    ]
    correlations = [
        {"id": 1, "rule": "requires", "source_activity_id": 1, "target_activity_id": 2},
        {"id": 2, "rule": "EXCLUDES", "source_activity_id": 1, "target_activity_id": 3},
        {"id": 3, "rule": "ALL", "source_activity_id": 2, "role": "membre junior"},
        {"id": 4, "rule": "REQUIRES", "source_activity_id": 1},
    ]
    FakeModel.responses = [
        _response(types, fenced=True),
        _response({"activities": activities}),
        _response(correlations),
    ]

    catalog, cost = generator.generate_catalog(activity_count=4, event_start=date(2026, 2, 20))

    assert [t.name for t in catalog.activity_types] == ["Workshops", "Plenary"]
    assert [a.id for a in catalog.activities] == [1, 2]
    assert catalog.activities[1].day == Day.J_2
    assert [c.id for c in catalog.correlations] == [1, 3]
    assert catalog.correlations[0].rule == CorrelationRule.REQUIRES
    assert catalog.correlations[1].role == ParticipantRole.MEMBRE_JUNIOR
    assert cost == pytest.approx(3 * (1000 * 0.075 + 2000 * 0.30) / 1_000_000)
    assert generator.total_cost == pytest.approx(cost)
    assert "2026-02-20" in generator.model.prompts[0]
