"""Tests for auto-sync change watching."""

import asyncio

import pytest

from exporters import JsonStateStore, TrackingStore
from extractors import ConversationExtractor
from orchestrator import ChangeWatcher, ConversationExporter

from fakes import FAST_SETTINGS, FakeHost, FakeSink, conversation_html

LINKS = [('aa01', 'Rome trip'), ('bb02', 'Bread recipe')]


@pytest.fixture
def host():
    host = FakeHost(
        links=LINKS,
        pages={
            'aa01': conversation_html(('user', 'Plan a trip')),
            'bb02': conversation_html(('user', 'Bake bread'), ('assistant', '<p>Sure</p>')),
        }
    )
    host.open('aa01')
    return host


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def store(tmp_path):
    return TrackingStore(JsonStateStore(str(tmp_path / 'state.json')))


@pytest.fixture
def watcher(host, sink, store):
    exporter = ConversationExporter(ConversationExtractor(selectors=host.selectors), sink, store)
    return ChangeWatcher(host, exporter, FAST_SETTINGS)


async def settle(seconds=0.1):
    await asyncio.sleep(seconds)


class TestChangeWatcher:
    """Test debounced exports on message growth."""

    @pytest.mark.asyncio
    async def test_burst_of_messages_exports_once(self, host, sink, store, watcher):
        watcher.start()
        assert watcher.last_count == 1

        host.append_message('assistant', '<p>Day one: Colosseum</p>')
        host.append_message('assistant', '<p>Day two: Vatican</p>')
        host.append_message('user', 'Thanks')
        await settle()
        await watcher.stop()

        assert len(sink.submissions) == 1
        filename, content, conversation_id = sink.submissions[0]
        assert conversation_id == 'aa01'
        assert 'Day two: Vatican' in content
        assert 'Thanks' in content
        assert store.contains('aa01')
        assert watcher.last_count == 4

    @pytest.mark.asyncio
    async def test_change_without_new_messages_is_ignored(self, host, sink, watcher):
        watcher.start()

        host.emit_change()
        await settle()
        await watcher.stop()

        assert sink.submissions == []
        assert not watcher.has_pending_export

    @pytest.mark.asyncio
    async def test_each_settled_burst_exports_again(self, host, sink, watcher):
        watcher.start()

        host.append_message('assistant', '<p>first answer</p>')
        await settle()
        host.append_message('assistant', '<p>second answer</p>')
        await settle()
        await watcher.stop()

        assert len(sink.submissions) == 2

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_export(self, host, sink, watcher):
        watcher.start()

        host.append_message('assistant', '<p>answer</p>')
        assert watcher.has_pending_export
        await watcher.stop()
        await settle()

        assert sink.submissions == []
        assert not watcher.is_running
        assert host.subscribers == []

    @pytest.mark.asyncio
    async def test_reattaches_after_navigation(self, host, sink, watcher):
        watcher.start()

        await host.activate('/c/bb02')
        await settle(0.02)

        assert watcher.is_attached
        assert watcher.last_count == 2
        assert len(host.subscribers) == 1

        host.append_message('assistant', '<p>Knead for ten minutes</p>')
        await settle()
        await watcher.stop()

        assert [cid for _, _, cid in sink.submissions] == ['bb02']

    @pytest.mark.asyncio
    async def test_missing_container_leaves_watcher_detached(self, host, watcher):
        host.missing_container = True

        watcher.start()

        assert watcher.is_running
        assert not watcher.is_attached
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_failed_export_is_recorded(self, host, store, watcher):
        watcher.exporter.sink = FakeSink(rejected=['aa01'])
        watcher.start()

        host.append_message('assistant', '<p>answer</p>')
        await settle()
        await watcher.stop()

        assert len(watcher.outcomes) == 1
        assert not watcher.outcomes[0].success
        assert watcher.outcomes[0].error.startswith('Download failed: ')
        assert not store.contains('aa01')
