"""
Main Execution Script for the Event Program Engine.
Loads a catalog snapshot, walks a demo participant through the selection
pipeline and exports the resulting program and compiled rules.
"""

import os
import sys
import logging
import json
from typing import Optional

from pydantic import ValidationError

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from models import EventCatalog, Participant, ParticipantRole
from selection import (
    InMemoryCatalog,
    InMemoryParticipants,
    InMemorySelectionStore,
    ProgramReconciler,
    SelectionEngine,
    SelectionError,
)
from selection.reporting import build_program_report, capacity_overview

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")

# --- CONFIGURATION ---
CACHE_FILENAME = os.environ.get("PROGRAM_CATALOG_CACHE", "catalog_snapshot.json")
USE_CACHE = os.environ.get("PROGRAM_USE_CACHE", "1") != "0"  # Set to 0 to force new AI generation
EXPORT_FILENAME = os.environ.get("PROGRAM_EXPORT_PATH", "program_report.json")
DEMO_ROLE = ParticipantRole(os.environ.get("PROGRAM_DEMO_ROLE", ParticipantRole.MEMBRE_JUNIOR.value))
API_KEY = os.environ.get("GOOGLE_API_KEY")
# ---------------------


def save_catalog(catalog: EventCatalog, filename: str) -> None:
    """Helper to save the catalog so we don't re-query the LLM every time."""
    with open(filename, 'w') as f:
        json.dump(catalog.model_dump(mode='json'), f, indent=2)
    logger.info(f"💾 Saved catalog snapshot to {filename}")


def load_cached_catalog(filename: str) -> Optional[EventCatalog]:
    """
    Helper to load a JSON snapshot and rebuild the validated catalog.
    """
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.warning(f"⚠️ Cache file {filename} not found or invalid. Falling back to Generator.")
        return None

    try:
        catalog = EventCatalog.model_validate(data)
    except ValidationError as e:
        logger.error(f"❌ Catalog snapshot {filename} failed validation: {e}")
        return None

    logger.info(f"✅ Cache Loaded: {len(catalog.activities)} activities, {len(catalog.correlations)} correlations.")
    return catalog


def export_report(report: dict, filename: str) -> None:
    with open(filename, 'w') as f:
        json.dump(report, f, indent=2)
    logger.info(f"✅ Program report exported to {filename}")


def main():
    if not API_KEY and not USE_CACHE:
        logger.error("❌ GOOGLE_API_KEY not found. Please set it via 'export GOOGLE_API_KEY=...'")
        return

    # --- PHASE 1: DATA ACQUISITION (Cache vs. GenAI) ---
    catalog = load_cached_catalog(CACHE_FILENAME) if USE_CACHE else None

    if catalog is None:
        if not API_KEY:
            logger.error("❌ No cached catalog and no GOOGLE_API_KEY to generate one. Exiting.")
            return
        # Imported lazily so cached runs do not need the Gemini client configured
        from generators.catalog_factory import CatalogGenerator

        generator = CatalogGenerator(api_key=API_KEY)
        catalog, cost = generator.generate_catalog(activity_count=20)
        logger.info(f"💸 Total Estimated LLM Cost: ${cost:.4f}")
        save_catalog(catalog, CACHE_FILENAME)

    if not catalog.activities:
        logger.error("❌ Catalog is empty. Exiting.")
        return

    # --- PHASE 2: SELECTION PIPELINE ---
    participant = Participant(id=1, role=DEMO_ROLE, first_name="Demo", last_name="Participant")
    store = InMemorySelectionStore()
    engine = SelectionEngine(
        catalog=InMemoryCatalog(catalog),
        selections=store,
        participants=InMemoryParticipants([participant]),
    )
    reconciler = ProgramReconciler(engine)

    added = reconciler.ensure_required(participant.id)
    logger.info(f"📋 Mandatory activities added: {added.added}")

    rules = engine.rules_for(participant.id)
    optional = [a for a in sorted(catalog.activities, key=lambda a: a.start_time)
                if not rules.is_mandatory(a.id) and not rules.is_forbidden(a.id)]

    for activity in optional[:3]:
        try:
            engine.select(participant.id, activity.id)
            logger.info(f"➕ Selected {activity.name}")
        except SelectionError as e:
            logger.warning(f"⛔ {activity.name} rejected: {e}")

    desired = [s.activity_id for s in engine.get_program(participant.id)] + [a.id for a in optional[3:5]]
    try:
        reconciler.update_program(participant.id, desired)
    except SelectionError as e:
        logger.warning(f"⛔ Program update stopped: {e}")

    # --- PHASE 3: REPORTING ---
    report = build_program_report(engine.catalog, store, participant, rules)

    print("\n" + "="*50)
    print("📊 FINAL PROGRAM REPORT")
    print("="*50)
    for day, entries in report["schedule"].items():
        print(f"\n{day}")
        for entry in entries:
            flag = " (mandatory)" if entry["mandatory"] else ""
            print(f"  {entry['start_time']} - {entry['end_time']}  {entry['name']}{flag}")

    if report["warnings"]:
        print("\n🔍 CATALOG WARNINGS")
        for warning in report["warnings"]:
            print(f"⚠️ {warning}")

    # --- PHASE 4: EXPORT FOR FRONTEND ---
    export_report({
        "program": report,
        "rules": rules.model_dump(mode='json'),
        "capacity": capacity_overview(engine.catalog, store),
    }, EXPORT_FILENAME)


if __name__ == "__main__":
    main()
