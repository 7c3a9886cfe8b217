"""
Shared fixtures: two in-memory connectors, an in-memory store and a
seeded contacts -> customers integration.
"""

import asyncio

import pytest
import pytest_asyncio

from syncbridge.connectors import ConnectorRegistry, InMemoryConnector
from syncbridge.core.config import Settings
from syncbridge.models import FieldMapping, Integration, MappingGroup, MappingType
from syncbridge.services.store import InMemoryStore

CONTACTS = [
    {"id": "c1", "email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace", "status": "Active"},
    {"id": "c2", "email": "alan@example.com", "first_name": "Alan", "last_name": "Turing", "status": "Inactive"},
    {"id": "c3", "first_name": "Nameless", "last_name": "Contact", "status": "Active"},
]


@pytest.fixture
def source():
    connector = InMemoryConnector("crm")
    connector.add_entity("contacts", ["id", "email", "first_name", "last_name", "status"])
    connector.seed("contacts", CONTACTS)
    return connector


@pytest.fixture
def target():
    connector = InMemoryConnector("warehouse")
    connector.add_entity("customers", ["email", "full_name", "tier"])
    return connector


@pytest.fixture
def registry(source, target):
    registry = ConnectorRegistry()
    registry.register(source)
    registry.register(target)
    return registry


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def settings():
    return Settings(sync_page_size=2)


def contact_field_mappings(mapping_id: str = "map-1"):
    return [
        FieldMapping(
            id="fm-email", mapping_id=mapping_id,
            source_field_id="email", target_field_id="email",
            source_field_path="email", target_field_path="email",
            transformations=[{"type": "string.lowercase"}],
        ),
        FieldMapping(
            id="fm-name", mapping_id=mapping_id,
            source_field_id="first_name", target_field_id="full_name",
            source_field_path="first_name", target_field_path="full_name",
            mapping_type=MappingType.COMPOSITE,
            mapping_config={"sourceFields": ["first_name", "last_name"], "separator": " "},
        ),
        FieldMapping(
            id="fm-tier", mapping_id=mapping_id,
            source_field_id="status", target_field_id="tier",
            source_field_path="status", target_field_path="tier",
            mapping_type=MappingType.CONDITIONAL,
            mapping_config={"conditions": [{"when": "status=Active", "then": "gold", "else": "standard"}]},
        ),
    ]


async def populate(store):
    """Save integration int-1 with one contacts -> customers mapping group."""
    await store.save_integration(Integration(
        id="int-1",
        name="CRM to warehouse",
        source_connector_id="crm",
        target_connector_id="warehouse",
    ))
    await store.save_mapping_group(MappingGroup(
        id="map-1",
        integration_id="int-1",
        name="Contacts",
        source_entity_id="contacts",
        target_entity_id="customers",
        source_key_field="email",
        target_key_field="email",
    ))
    for field_mapping in contact_field_mappings():
        await store.save_field_mapping(field_mapping)
    return store


@pytest_asyncio.fixture
async def seeded_store(store):
    return await populate(store)


@pytest.fixture
def populated_store(store):
    """Same as seeded_store, for synchronous tests (API, CLI)."""
    return asyncio.run(populate(store))
