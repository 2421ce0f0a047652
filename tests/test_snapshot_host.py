"""Tests for the saved-page snapshot host."""

import asyncio
import os

import pytest

from exporters import JsonStateStore, MarkdownExporter, TrackingStore
from hosts import HostFactory, HtmlSnapshotHost
from hosts.base_host import HostError, NavigationError, ScrollPosition
from orchestrator import BatchOrchestrator

from fakes import FAST_SETTINGS, conversation_html, write_page, write_snapshot

SCROLLER = 'nav [class*="overflow-y-auto"]'


@pytest.fixture
def snapshot_dir(tmp_path):
    root = tmp_path / 'saved'
    root.mkdir()
    links = [(f'{index:04x}', f'Topic {index}') for index in range(5)]
    pages = {
        '0000': conversation_html(('user', 'Plan a trip'), ('assistant', '<p>Rome it is</p>')),
        '0001': conversation_html(('user', 'Bake bread'), ('assistant', '<p>Use <code>flour</code></p>')),
    }
    write_snapshot(root, links, pages)
    return root


def make_host(snapshot_dir, **host_options):
    host_config = {'snapshot_directory': str(snapshot_dir), 'page_size': 2, 'poll_interval': 0.01}
    host_config.update(host_options)
    return HtmlSnapshotHost({'host': host_config})


class TestHostCreation:
    """Test configuration handling."""

    def test_requires_directory_setting(self):
        with pytest.raises(ValueError):
            HtmlSnapshotHost({'host': {}})

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            HtmlSnapshotHost({'host': {'snapshot_directory': str(tmp_path / 'nope')}})

    def test_missing_index(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            HtmlSnapshotHost({'host': {'snapshot_directory': str(tmp_path)}})

    def test_factory(self, snapshot_dir):
        host = HostFactory.create_host({'host': {'snapshot_directory': str(snapshot_dir)}}, None)
        assert isinstance(host, HtmlSnapshotHost)

    def test_factory_rejects_unknown_mode(self, snapshot_dir):
        with pytest.raises(ValueError):
            HostFactory.create_host({'host': {'mode': 'browser', 'snapshot_directory': str(snapshot_dir)}}, None)

    def test_start_conversation(self, snapshot_dir):
        host = make_host(snapshot_dir, start_conversation='0001')
        snapshot = host.snapshot()
        assert snapshot.conversation_id == '0001'
        assert snapshot.count('[data-message-author-role]') == 2


class TestVirtualizedSidebar:
    """Test page-by-page link materialization."""

    @pytest.mark.asyncio
    async def test_scrolling_reveals_pages(self, snapshot_dir):
        host = make_host(snapshot_dir)
        link_selector = host.selectors.conversation_link

        counts = [host.snapshot().count(link_selector)]
        for _ in range(3):
            await host.scroll_to(SCROLLER, ScrollPosition.BOTTOM)
            counts.append(host.snapshot().count(link_selector))

        assert counts == [2, 4, 5, 5]
        assert host.total_links == 5

    @pytest.mark.asyncio
    async def test_scroll_to_top_keeps_revealed_links(self, snapshot_dir):
        host = make_host(snapshot_dir)
        await host.scroll_to(SCROLLER, ScrollPosition.BOTTOM)
        await host.scroll_to(SCROLLER, ScrollPosition.TOP)

        assert host.revealed_links == 4
        assert host.scroll_position is ScrollPosition.TOP

    @pytest.mark.asyncio
    async def test_unknown_container(self, snapshot_dir):
        host = make_host(snapshot_dir)
        with pytest.raises(HostError):
            await host.scroll_to('aside', ScrollPosition.BOTTOM)


class TestNavigation:
    """Test activation and navigation notifications."""

    @pytest.mark.asyncio
    async def test_activate_mounts_conversation(self, snapshot_dir):
        host = make_host(snapshot_dir)
        urls = []
        host.add_navigation_listener(urls.append)

        await host.activate('/c/0000')

        snapshot = host.snapshot()
        assert snapshot.url == 'https://chatgpt.com/c/0000'
        assert snapshot.count('[data-message-author-role]') == 2
        active = snapshot.document.select_one('a.bg-token-sidebar-surface-secondary')
        assert active['href'] == '/c/0000'
        assert urls == ['https://chatgpt.com/c/0000']

    @pytest.mark.asyncio
    async def test_activate_missing_page(self, snapshot_dir):
        host = make_host(snapshot_dir)
        with pytest.raises(NavigationError):
            await host.activate('/c/0004')

    @pytest.mark.asyncio
    async def test_removed_listener_is_not_called(self, snapshot_dir):
        host = make_host(snapshot_dir)
        urls = []
        subscription = host.add_navigation_listener(urls.append)
        subscription.close()

        await host.activate('/c/0000')

        assert urls == []


class TestChangeNotification:
    """Test file polling subscriptions."""

    @pytest.mark.asyncio
    async def test_modified_page_notifies_subscribers(self, snapshot_dir):
        host = make_host(snapshot_dir, start_conversation='0000')
        changed = asyncio.Event()
        host.subscribe(host.selectors.conversation_container, changed.set)

        path = snapshot_dir / 'conversations' / '0000.html'
        mtime = os.path.getmtime(path)
        write_page(snapshot_dir, '0000', conversation_html(
            ('user', 'Plan a trip'), ('assistant', '<p>Rome it is</p>'), ('user', 'And Florence?')
        ))
        os.utime(path, (mtime + 10, mtime + 10))

        await asyncio.wait_for(changed.wait(), timeout=2)
        assert host.snapshot().count('[data-message-author-role]') == 3
        await host.close()

    @pytest.mark.asyncio
    async def test_subscribe_to_missing_container(self, snapshot_dir):
        host = make_host(snapshot_dir)
        with pytest.raises(HostError):
            host.subscribe('.does-not-exist', lambda: None)


class TestSnapshotBatchExport:
    """Run a complete batch against saved pages."""

    @pytest.mark.asyncio
    async def test_batch_over_saved_pages(self, snapshot_dir, tmp_path):
        config = {'export': {'output_directory': str(tmp_path / 'out')}}
        host = make_host(snapshot_dir)
        store = TrackingStore(JsonStateStore(str(tmp_path / 'state.json')))
        sink = MarkdownExporter(config)

        result = await BatchOrchestrator(host, store, sink, settings=FAST_SETTINGS).run_batch()

        assert (result.total, result.exported, result.failed) == (5, 2, 3)
        assert store.get() == {'0000', '0001'}
        document = (tmp_path / 'out' / 'chatgpt-exports' / 'Topic_1.md').read_text(encoding='utf-8')
        assert document.startswith('# Topic 1\n')
        assert '## Assistant\n\nUse `flour`\n' in document
        assert all(error.startswith('Error: Topic') for error in result.errors)
