"""
Tests for entity data stores.
"""
import json

import pytest
import requests
from unittest.mock import patch, Mock
from bookshop_directory.data_store import (
    EntityStoreError,
    InMemoryEntityStore,
    JsonFileEntityStore,
    RestEntityStore,
    create_entity_store,
    rows_to_entities,
)
from bookshop_directory.models import Entity


def _response(rows, status_code=200):
    response = Mock()
    response.json.return_value = rows
    response.status_code = status_code
    response.raise_for_status.return_value = None
    return response


class TestEntityFromRow:
    """Test cases for Entity.from_row."""

    def test_column_aliases(self):
        entity = Entity.from_row({
            'id': '12', 'name': 'Alias Books', 'state': 'OR', 'city': 'Bend',
            'county': 'Deschutes', 'live': 'TRUE', 'featureIds': '1, 4',
        })
        assert entity == Entity(id=12, name='Alias Books', region='OR', locality='Bend',
                                county='Deschutes', live=True, feature_ids=(1, 4))

    @pytest.mark.parametrize('value,expected', [
        (True, True), (False, False), (1, True), (0, False),
        ('yes', True), ('Live', True), ('no', False), ('', False), (None, False),
    ])
    def test_live_values(self, value, expected):
        assert Entity.from_row({'id': 1, 'name': 'x', 'live': value}).live is expected

    def test_numeric_county_is_text(self):
        entity = Entity.from_row({'id': 1, 'name': 'x', 'county': 6037})
        assert entity.county == '6037'
        assert Entity.from_row({'id': 1, 'name': 'x'}).county is None

    def test_missing_id(self):
        with pytest.raises(ValueError):
            Entity.from_row({'name': 'No Id Books'})

    def test_to_dict(self):
        data = Entity(id=1, name='A', feature_ids=(2,)).to_dict()
        assert data['feature_ids'] == [2]
        assert data['live'] is True

    def test_rows_to_entities_skips_bad_rows(self):
        entities = rows_to_entities([{'id': 1, 'name': 'Good'}, {'id': 'abc'}, 'not a row'])
        assert [e.id for e in entities] == [1]


class TestInMemoryEntityStore:
    """Test cases for InMemoryEntityStore."""

    def test_get_entity_by_id(self, entity_store):
        assert entity_store.get_entity_by_id(42).name == 'Green Apple Books'
        assert entity_store.get_entity_by_id(999) is None

    def test_find_live_by_slug(self, entity_store):
        assert entity_store.find_live_by_slug('powells-books').id == 1
        assert entity_store.find_live_by_slug('book-nook').id == 6
        assert entity_store.find_live_by_slug('the-closed-chapter') is None

    def test_replace_with_rows(self, entity_store):
        entity_store.replace([{'id': 9, 'name': 'Row Books', 'live': True}])
        assert [e.id for e in entity_store.list_entities()] == [9]

    def test_invalidate_cache_is_noop(self, entity_store):
        assert entity_store.invalidate_cache() is False


class TestJsonFileEntityStore:
    """Test cases for JsonFileEntityStore."""

    def test_list_entities(self, tmp_path):
        path = tmp_path / 'entities.json'
        path.write_text(json.dumps([
            {'id': 1, 'name': 'One', 'state': 'CA', 'live': True},
            {'id': 2, 'name': 'Two', 'state': 'OR', 'live': False},
        ]))
        entities = JsonFileEntityStore(path).list_entities()
        assert [e.id for e in entities] == [1, 2]
        assert entities[1].live is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(EntityStoreError):
            JsonFileEntityStore(tmp_path / 'missing.json').list_entities()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('[{"id": 1,')
        with pytest.raises(EntityStoreError):
            JsonFileEntityStore(path).list_entities()

    def test_not_an_array(self, tmp_path):
        path = tmp_path / 'object.json'
        path.write_text('{"id": 1}')
        with pytest.raises(EntityStoreError):
            JsonFileEntityStore(path).list_entities()


class TestRestEntityStore:
    """Test cases for RestEntityStore."""

    def _store(self, **kwargs):
        kwargs.setdefault('use_cache', False)
        return RestEntityStore('https://example.supabase.co/', api_key='secret', **kwargs)

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            RestEntityStore('')

    def test_url(self):
        assert self._store().url == 'https://example.supabase.co/rest/v1/bookstores'

    @patch('bookshop_directory.data_store.requests.get')
    def test_list_entities_paginates(self, mock_get):
        mock_get.side_effect = [
            _response([{'id': 1, 'name': 'A', 'live': True}, {'id': 2, 'name': 'B', 'live': True}]),
            _response([{'id': 3, 'name': 'C', 'live': True}, {'id': 4, 'name': 'D', 'live': True}]),
            _response([{'id': 5, 'name': 'E', 'live': False}]),
        ]

        entities = self._store(page_size=2).list_entities()

        assert [e.id for e in entities] == [1, 2, 3, 4, 5]
        assert mock_get.call_count == 3
        offsets = [call.kwargs['params']['offset'] for call in mock_get.call_args_list]
        assert offsets == [0, 2, 4]
        headers = mock_get.call_args.kwargs['headers']
        assert headers['apikey'] == 'secret'
        assert headers['Authorization'] == 'Bearer secret'

    @patch('bookshop_directory.data_store.requests.get')
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()
        with pytest.raises(EntityStoreError):
            self._store().list_entities()

    @patch('bookshop_directory.data_store.requests.get')
    def test_http_error(self, mock_get):
        response = _response([])
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('500 Server Error')
        mock_get.return_value = response
        with pytest.raises(EntityStoreError):
            self._store().list_entities()

    @patch('bookshop_directory.data_store.requests.get')
    def test_unexpected_body(self, mock_get):
        mock_get.return_value = _response({'message': 'oops'})
        with pytest.raises(EntityStoreError):
            self._store().list_entities()

    @patch('bookshop_directory.data_store.requests.get')
    def test_get_entity_by_id(self, mock_get):
        mock_get.return_value = _response([{'id': 42, 'name': 'Green Apple Books', 'live': True}])

        entity = self._store().get_entity_by_id(42)

        assert entity.name == 'Green Apple Books'
        params = mock_get.call_args.kwargs['params']
        assert params['id'] == 'eq.42'
        assert params['limit'] == 1

    @patch('bookshop_directory.data_store.requests.get')
    def test_get_entity_by_id_missing(self, mock_get):
        mock_get.return_value = _response([])
        assert self._store().get_entity_by_id(7) is None

    @patch('bookshop_directory.data_store.requests.get')
    @patch('bookshop_directory.data_store.SnapshotCache.get_cached_rows')
    def test_uses_snapshot_cache(self, mock_cached, mock_get):
        mock_cached.return_value = [{'id': 1, 'name': 'Cached Books', 'live': True}]

        entities = self._store(use_cache=True).list_entities()

        assert entities[0].name == 'Cached Books'
        mock_cached.assert_called_once_with('rest_bookstores')
        mock_get.assert_not_called()

    @patch('bookshop_directory.data_store.requests.get')
    @patch('bookshop_directory.data_store.SnapshotCache.cache_rows')
    @patch('bookshop_directory.data_store.SnapshotCache.get_cached_rows')
    def test_cache_miss_fetches_and_stores(self, mock_cached, mock_cache_rows, mock_get):
        mock_cached.return_value = None
        rows = [{'id': 1, 'name': 'Fresh Books', 'live': True}]
        mock_get.return_value = _response(rows)

        self._store(use_cache=True).list_entities()

        mock_cache_rows.assert_called_once_with('rest_bookstores', rows)

    @patch('bookshop_directory.data_store.SnapshotCache.invalidate')
    def test_invalidate_cache(self, mock_invalidate):
        mock_invalidate.return_value = True
        assert self._store().invalidate_cache() is True
        mock_invalidate.assert_called_once_with('rest_bookstores')


class TestCreateEntityStore:
    """Test cases for create_entity_store."""

    def test_memory(self):
        assert isinstance(create_entity_store({'DATA_BACKEND': 'memory'}), InMemoryEntityStore)

    def test_json(self, tmp_path):
        store = create_entity_store({'DATA_BACKEND': 'json', 'ENTITIES_FILE': str(tmp_path / 'x.json')})
        assert isinstance(store, JsonFileEntityStore)

    def test_rest(self):
        store = create_entity_store({
            'DATA_BACKEND': 'REST',
            'DATA_API_BASE_URL': 'https://example.supabase.co',
            'DATA_API_TABLE': 'shops',
        })
        assert isinstance(store, RestEntityStore)
        assert store.table == 'shops'

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_entity_store({'DATA_BACKEND': 'sqlite'})
