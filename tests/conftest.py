"""
Pytest configuration and fixtures.
"""
import pytest
from bookshop_directory import create_app
from bookshop_directory.canonical_index import CanonicalIndex
from bookshop_directory.config import TestingConfig
from bookshop_directory.data_store import InMemoryEntityStore
from bookshop_directory.models import Entity


def make_sample_entities():
    """A small directory: one slug collision, one closed shop, prefix-sharing names."""
    return [
        Entity(id=1, name="Powell's Books", region='OR', locality='Portland',
               county='Multnomah County', feature_ids=(1, 2)),
        Entity(id=2, name='Oak Books', region='CO', locality='Denver'),
        Entity(id=3, name='Oak', region='CO', locality='Boulder'),
        Entity(id=4, name='The Closed Chapter', region='WA', locality='Seattle', live=False),
        Entity(id=5, name='Book Nook', region='CA', locality='Los Angeles',
               county='Los Angeles', feature_ids=(2,)),
        Entity(id=6, name='Book Nook', region='California', locality='San Diego',
               county='San Diego'),
        Entity(id=42, name='Green Apple Books', region='CA', locality='San Francisco',
               county='San Francisco', feature_ids=(1, 3)),
    ]


@pytest.fixture
def sample_entities():
    return make_sample_entities()


@pytest.fixture
def sample_index(sample_entities):
    return CanonicalIndex.build(sample_entities)


@pytest.fixture
def entity_store(sample_entities):
    return InMemoryEntityStore(sample_entities)


@pytest.fixture
def app(entity_store):
    """Create application for testing."""
    app = create_app(TestingConfig, entity_store=entity_store)
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False  # Disable CSRF for testing
    yield app
    app.extensions['canonical_locator'].refresh_job.stop()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()
