"""Tests for persisted state, export tracking and the Markdown file sink."""

import json

import pytest

from exporters import JsonStateStore, MarkdownExporter, TrackingStore, TrackingStoreError


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / 'state' / 'sync-state.json'


class TestJsonStateStore:
    """Test the JSON key/value file."""

    def test_missing_file_is_empty(self, state_path):
        assert JsonStateStore(str(state_path)).load() == {}

    def test_set_and_get_persist(self, state_path):
        JsonStateStore(str(state_path)).set('auto_sync', True)

        assert JsonStateStore(str(state_path)).get('auto_sync') is True
        assert json.loads(state_path.read_text(encoding='utf-8')) == {'auto_sync': True}

    def test_remove(self, state_path):
        store = JsonStateStore(str(state_path))
        store.set('a', 1)
        store.set('b', 2)
        store.remove('a')
        assert store.load() == {'b': 2}

    def test_corrupt_file_raises(self, state_path):
        state_path.parent.mkdir(parents=True)
        state_path.write_text('{not json', encoding='utf-8')
        with pytest.raises(TrackingStoreError):
            JsonStateStore(str(state_path)).load()

    def test_non_object_file_raises(self, state_path):
        state_path.parent.mkdir(parents=True)
        state_path.write_text('[1, 2]', encoding='utf-8')
        with pytest.raises(TrackingStoreError):
            JsonStateStore(str(state_path)).get('anything')

    def test_unwritable_location_raises(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('a file, not a directory', encoding='utf-8')
        store = JsonStateStore(str(blocker / 'state.json'))
        with pytest.raises(TrackingStoreError):
            store.set('key', 'value')


class TestTrackingStore:
    """Test the exported id set."""

    def test_add_persists_immediately(self, state_path):
        TrackingStore(JsonStateStore(str(state_path))).add('abc')

        reopened = TrackingStore(JsonStateStore(str(state_path)))
        assert reopened.get() == {'abc'}
        assert reopened.contains('abc')
        assert not reopened.contains('def')

    def test_add_is_idempotent(self, state_path):
        store = TrackingStore(JsonStateStore(str(state_path)))
        store.add('abc')
        store.add('abc')
        assert store.count() == 1

    def test_empty_id_is_ignored(self, state_path):
        store = TrackingStore(JsonStateStore(str(state_path)))
        store.add('')
        assert store.get() == set()
        assert not state_path.exists()

    def test_contains_reads_fresh_state(self, state_path):
        first = TrackingStore(JsonStateStore(str(state_path)))
        second = TrackingStore(JsonStateStore(str(state_path)))

        second.add('written-elsewhere')

        assert first.contains('written-elsewhere')

    def test_clear_keeps_other_keys(self, state_path):
        state = JsonStateStore(str(state_path))
        state.set('auto_sync', True)
        store = TrackingStore(state)
        store.add('abc')

        store.clear()

        assert store.get() == set()
        assert state.get('auto_sync') is True

    def test_invalid_persisted_value_raises(self, state_path):
        state = JsonStateStore(str(state_path))
        state.set('exported_conversations', 'not-a-list')
        with pytest.raises(TrackingStoreError):
            TrackingStore(state).get()


class TestMarkdownExporter:
    """Test the file download sink."""

    @pytest.mark.asyncio
    async def test_writes_into_subfolder(self, tmp_path):
        exporter = MarkdownExporter({'export': {'output_directory': str(tmp_path)}})

        result = await exporter.submit('Greeting.md', '# Greeting\n', 'abc')

        target = tmp_path / 'chatgpt-exports' / 'Greeting.md'
        assert result.success
        assert result.handle == str(target)
        assert target.read_text(encoding='utf-8') == '# Greeting\n'
        assert exporter.get_stats()['files_written'] == 1

    @pytest.mark.asyncio
    async def test_existing_file_gets_numbered_name(self, tmp_path):
        exporter = MarkdownExporter({'export': {'output_directory': str(tmp_path), 'subfolder': 'out'}})

        await exporter.submit('Same.md', 'first', 'a')
        await exporter.submit('Same.md', 'second', 'b')
        result = await exporter.submit('Same.md', 'third', 'c')

        assert result.handle == str(tmp_path / 'out' / 'Same (2).md')
        assert (tmp_path / 'out' / 'Same.md').read_text(encoding='utf-8') == 'first'
        assert (tmp_path / 'out' / 'Same (1).md').read_text(encoding='utf-8') == 'second'

    @pytest.mark.asyncio
    async def test_write_failure_is_reported(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('a file, not a directory', encoding='utf-8')
        exporter = MarkdownExporter({}, output_dir=str(blocker))

        result = await exporter.submit('Doc.md', 'content', 'abc')

        assert not result.success
        assert result.error
        assert exporter.get_stats()['total_errors'] == 1
