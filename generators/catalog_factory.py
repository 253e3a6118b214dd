"""
LLM-powered demo catalog generator for the Event Program Engine.
STRATEGY: one request per record family (types, activities, correlations).
Strong prompts + robust parsing; invalid records are dropped, never patched up.
"""

import os
import json
import logging
import re
import google.generativeai as genai
from typing import List, Tuple, Any, Type
from datetime import date
from pydantic import ValidationError, BaseModel

from models import Activity, ActivityType, ActivityCorrelation, EventCatalog, ParticipantRole

logger = logging.getLogger(__name__)

MODEL_NAME = os.environ.get("PROGRAM_GEMINI_MODEL", "gemini-2.5-flash")


class CatalogGenerator:
    def __init__(self, api_key: str | None = None, model_name: str = MODEL_NAME):
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY not found. Please set it in environment.")

        genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(model_name)
        self.total_cost = 0.0

    def _estimate_cost(self, prompt_tokens: int, response_tokens: int) -> float:
        return (prompt_tokens * 0.075 + response_tokens * 0.30) / 1_000_000

    def _robust_parse_json(self, raw_text: str) -> List[Any]:
        """
        Handles Markdown stripping and shape normalization.
        Always returns a list of raw records (possibly empty).
        """
        if not raw_text:
            return []

        # 1. Clean Markdown Code Blocks
        clean_text = re.sub(r"```json\s*|\s*```", "", raw_text).strip()

        try:
            data = json.loads(clean_text)
        except json.JSONDecodeError:
            # Fallback: Try to regex extract the main list
            match = re.search(r'(\[.*\])', clean_text, re.DOTALL)
            if not match:
                return []
            try:
                data = json.loads(match.group(1))
            except json.JSONDecodeError:
                return []

        # 2. Normalize Data Shape
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ['activity_types', 'activities', 'correlations', 'result']:
                if key in data and isinstance(data[key], list):
                    return data[key]
            return [data]
        return []

    def _normalize(self, record: dict) -> dict:
        """Upper-case enum fields the model tends to write in other casings."""
        for key in ('day', 'rule', 'role'):
            if isinstance(record.get(key), str):
                record[key] = record[key].strip().upper().replace(" ", "_").replace("-", "_")
        for key in ('required_for_roles', 'auto_pick_for_roles'):
            if isinstance(record.get(key), list):
                record[key] = [str(r).strip().upper().replace(" ", "_") for r in record[key]]
        return record

    def _fetch_batch(self, prompt: str, model_class: Type[BaseModel]) -> Tuple[List[Any], float]:
        """
        Executes a generation request and validates every returned record.
        """
        generation_config = genai.GenerationConfig(
            response_mime_type="application/json",
            max_output_tokens=16000,
            temperature=0.7
        )
        response = self.model.generate_content(prompt, generation_config=generation_config)

        cost = 0.0
        usage = getattr(response, 'usage_metadata', None)
        if usage is not None:
            cost = self._estimate_cost(usage.prompt_token_count, usage.candidates_token_count)
        self.total_cost += cost

        valid_items = []
        for i, item in enumerate(self._robust_parse_json(response.text)):
            if not isinstance(item, dict):
                continue
            try:
                valid_items.append(model_class(**self._normalize(item)))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {model_class.__name__} record {i}: {e.json()}")
        return valid_items, cost

    def generate_catalog(self, activity_count: int = 20, event_start: date | None = None) -> Tuple[EventCatalog, float]:
        """
        Generates a two-day event catalog: activity types, activities and correlations.
        Correlations pointing at activities that did not survive validation are dropped.
        """
        if event_start is None:
            event_start = date.today()
        roles = json.dumps([r.value for r in ParticipantRole])
        step_cost = 0.0

        logger.info(f"Generating demo catalog ({activity_count} activities, 3 API calls)...")

        # 1. Activity Types
        prompt_types = f"""
        Generate 6 activity types (slot families) for a two-day student association congress
        starting {event_start}.
        OUTPUT: JSON Array.
        FIELDS: id (int, 1..6), name, description, day ("J_1" or "J_2"),
        earliest_time ("HH:MM:SS"), latest_time ("HH:MM:SS").
        """
        types, c1 = self._fetch_batch(prompt_types, ActivityType)
        types = _first_per_id(types)
        step_cost += c1
        type_days = {t.id: t.day.value for t in types}

        # 2. Activities
        prompt_acts = f"""
        Generate {activity_count} activities for the congress. Day J_1 is {event_start}, J_2 is the day after.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "id": INTEGER, unique, starting at 1.
        - "activity_type_id": one of {sorted(type_days)}; "day" MUST match this mapping: {json.dumps(type_days)}.
        - "start_time"/"end_time": ISO datetimes on that day, end after start, between 08:00 and 20:00.
        - "capacity": integer 20..500.
        - "is_required": true for at most 2 plenary sessions.
        - "required_for_roles": list drawn from {roles}.
        FIELDS: id, name, description, start_time, end_time, activity_type_id, day, capacity,
        is_required, required_for_roles.
        """
        activities, c2 = self._fetch_batch(prompt_acts, Activity)
        step_cost += c2
        activity_ids = sorted({a.id for a in activities})

        # 3. Correlations
        prompt_corr = f"""
        Generate 6 correlation rules between these activity ids: {activity_ids}.
        OUTPUT: JSON Array.
        RULES:
        - "rule": one of ["REQUIRES", "EXCLUDES", "ALL"].
        - "target_activity_id": an id from the list, or null for a role-level rule.
        - If "target_activity_id" is null, "role" MUST be one of {roles}.
        - "auto_pick_for_roles": list drawn from {roles} (may be empty).
        FIELDS: id (int), rule, source_activity_id, target_activity_id, role, auto_pick_for_roles, description.
        """
        correlations, c3 = self._fetch_batch(prompt_corr, ActivityCorrelation)
        step_cost += c3

        # Keep only activities whose type survived, and rules between kept activities,
        # so the snapshot validates
        activities = [
            a for a in _first_per_id(activities)
            if type_days.get(a.activity_type_id) == a.day.value
        ]
        known = {a.id for a in activities}
        correlations = [
            c for c in correlations
            if c.source_activity_id in known and (c.target_activity_id is None or c.target_activity_id in known)
        ]

        catalog = EventCatalog(
            activity_types=types,
            activities=activities,
            correlations=_first_per_id(correlations),
        )
        logger.info(
            f"Generated catalog: {len(catalog.activity_types)} types, "
            f"{len(catalog.activities)} activities, {len(catalog.correlations)} correlations"
        )
        return catalog, step_cost


def _first_per_id(items: List[Any]) -> List[Any]:
    """Drop records repeating an id already seen (the model sometimes restarts numbering)."""
    seen = set()
    kept = []
    for item in items:
        if item.id in seen:
            logger.warning(f"Dropping duplicate {type(item).__name__} id {item.id}")
            continue
        seen.add(item.id)
        kept.append(item)
    return kept
