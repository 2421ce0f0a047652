"""Tests for incremental sidebar loading."""

import pytest

from extractors import ConversationListLoader, collect_links
from hosts.base_host import ScrollPosition

from fakes import FAST_SETTINGS, FakeHost


def make_links(count):
    return [(f'{index:04x}', f'Conversation {index}') for index in range(count)]


class TestCollectLinks:
    """Test sidebar link enumeration."""

    def test_links_in_sidebar_order(self):
        host = FakeHost(links=[('aa01', 'First'), ('bb02', 'Second')])
        links = collect_links(host.snapshot(), host)

        assert [link.id for link in links] == ['aa01', 'bb02']
        assert [link.title for link in links] == ['First', 'Second']
        assert links[0].href == '/c/aa01'
        assert links[0].url == 'https://chatgpt.com/c/aa01'

    def test_empty_link_text_is_untitled(self):
        host = FakeHost(links=[('aa01', '   ')])
        assert collect_links(host.snapshot(), host)[0].title == 'Untitled'


class TestConversationListLoader:
    """Test the scroll-until-stable loop."""

    @pytest.mark.asyncio
    async def test_loads_every_page(self):
        host = FakeHost(links=make_links(70), page_size=28)
        loader = ConversationListLoader(host, FAST_SETTINGS)

        count = await loader.materialize_all()

        assert count == 70
        # Two growing scrolls, then three without growth
        assert loader.attempts == 5

    @pytest.mark.asyncio
    async def test_stops_after_stall_limit(self):
        host = FakeHost(links=make_links(5), page_size=28)
        loader = ConversationListLoader(host, FAST_SETTINGS)

        count = await loader.materialize_all()

        assert count == 5
        assert loader.attempts == FAST_SETTINGS.stall_limit

    @pytest.mark.asyncio
    async def test_bounded_by_max_attempts(self):
        host = FakeHost(links=make_links(1), endless=True)
        loader = ConversationListLoader(host, FAST_SETTINGS)

        count = await loader.materialize_all()

        assert loader.attempts == FAST_SETTINGS.max_scroll_attempts == 50
        assert count == 51

    @pytest.mark.asyncio
    async def test_scrolls_back_to_top(self):
        host = FakeHost(links=make_links(3))
        loader = ConversationListLoader(host, FAST_SETTINGS)

        await loader.materialize_all()

        selector, position = host.scroll_calls[-1]
        assert position is ScrollPosition.TOP
        assert selector == 'nav [class*="overflow-y-auto"]'

    @pytest.mark.asyncio
    async def test_scrolls_back_to_top_when_scrolling_fails(self):
        host = FakeHost(links=make_links(3))
        calls = []
        original = host.scroll_to

        async def flaky_scroll(selector, position):
            calls.append(position)
            if position is ScrollPosition.BOTTOM:
                raise RuntimeError("scroll failed")
            await original(selector, position)

        host.scroll_to = flaky_scroll
        loader = ConversationListLoader(host, FAST_SETTINGS)

        with pytest.raises(RuntimeError):
            await loader.materialize_all()

        assert calls == [ScrollPosition.BOTTOM, ScrollPosition.TOP]

    @pytest.mark.asyncio
    async def test_no_sidebar_returns_zero(self):
        host = FakeHost(links=make_links(3), config={'selectors': {'sidebar': 'aside'}})
        loader = ConversationListLoader(host, FAST_SETTINGS)

        assert await loader.materialize_all() == 0
        assert host.scroll_calls == []

    def test_scroll_container_falls_back_to_sidebar(self):
        host = FakeHost(
            links=make_links(1),
            config={'selectors': {'scroll_containers': ['.does-not-exist']}}
        )
        loader = ConversationListLoader(host, FAST_SETTINGS)
        assert loader.find_scroll_container(host.snapshot()) == 'nav'
