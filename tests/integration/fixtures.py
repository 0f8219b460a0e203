"""
Integration Test Fixtures

Fixed payloads and a deterministic clock for API tests.
All fixtures are explicit - no random generation.
"""

import itertools
import json

from asset_registry.engine import AssetRegistry
from asset_registry.storage import InMemoryKeyValueStore


# =============================================================================
# FIXED TIMESTAMPS (epoch milliseconds, deterministic)
# =============================================================================

T0 = 1_767_225_600_000  # 2026-01-01T00:00:00.000Z


def make_clock(start=T0):
    ticks = itertools.count(start, 1000)
    return lambda: next(ticks)


# =============================================================================
# REGISTRY FIXTURES
# =============================================================================

def create_registry(initial=None):
    """In-memory registry, optionally seeded under the current key."""
    store = InMemoryKeyValueStore(initial)
    return AssetRegistry(store=store, clock=make_clock())


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

SYSTEM_BODY = {"name": "Plant", "type": "System"}
COOLING_BODY = {"name": "Cooling", "type": "Subsystem", "level": 1}


def component_body(name, parent_id, resolution=None):
    body = {"name": name, "type": "Component", "parentId": parent_id}
    if resolution:
        body["resolution"] = resolution
    return body


IMPORT_PAYLOAD = json.dumps([
    {"id": "imp1", "name": "Air", "type": "Subsystem", "level": 1, "parentId": None,
     "createdAt": T0},
    {"id": "imp2", "name": "Fan", "type": "Component", "parentId": "imp1", "createdAt": T0},
    {"name": "no id", "type": "Component"},
])
