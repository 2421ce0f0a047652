"""Tests for extracting conversations from page snapshots."""

import re

from bs4 import BeautifulSoup

from extractors import ConversationExtractor
from hosts.base_host import PageSnapshot
from models import MessageRole

from fakes import conversation_html, message_html

URL = 'https://chatgpt.com/c/0a1b2c3d'


def snapshot(main, nav='', url=URL):
    html = f'<html><body><nav>{nav}</nav><main>{main}</main></body></html>'
    return PageSnapshot(document=BeautifulSoup(html, 'lxml'), url=url)


class TestConversationExtractor:
    """Test message extraction and record assembly."""

    def test_extracts_messages_in_document_order(self):
        main = conversation_html(
            ('user', 'What is <b>2+2</b>?'),
            ('assistant', '<p>It is <strong>4</strong>.</p>'),
        )
        record = ConversationExtractor().extract(snapshot(main))

        assert record is not None
        assert [m.role for m in record.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
        assert record.messages[0].content == 'What is **2+2**?'
        assert record.messages[1].content == 'It is **4**.'

    def test_record_metadata(self):
        main = conversation_html(('user', 'Plan a trip to Rome'), ('assistant', '<p>Sure</p>'))
        nav = '<a href="/c/0a1b2c3d" class="bg-token-sidebar-surface-secondary">Rome trip</a>'
        record = ConversationExtractor().extract(snapshot(main, nav))

        assert record.id == '0a1b2c3d'
        assert record.url == URL
        assert record.title == 'Rome trip'
        assert re.match(r'^\d{4}-\d{2}-\d{2}$', record.date)

    def test_other_roles_are_ignored(self):
        main = conversation_html(
            ('system', 'hidden'),
            ('user', 'visible'),
            ('tool', 'also hidden'),
        )
        record = ConversationExtractor().extract(snapshot(main))
        assert [m.content for m in record.messages] == ['visible']

    def test_empty_messages_are_dropped(self):
        main = conversation_html(('user', '   '), ('assistant', '<p>answer</p>'))
        record = ConversationExtractor().extract(snapshot(main))
        assert [m.role for m in record.messages] == [MessageRole.ASSISTANT]

    def test_message_without_content_element_is_skipped(self):
        main = '<div data-message-author-role="user"><span>no content wrapper</span></div>'
        main += message_html('assistant', '<p>kept</p>')
        record = ConversationExtractor().extract(snapshot(main))
        assert [m.content for m in record.messages] == ['kept']

    def test_no_messages_returns_none(self):
        assert ConversationExtractor().extract(snapshot('<div>empty page</div>')) is None

    def test_only_blank_messages_returns_none(self):
        main = conversation_html(('user', ' '), ('assistant', ''))
        assert ConversationExtractor().extract(snapshot(main)) is None

    def test_record_without_id_cannot_deduplicate(self):
        main = conversation_html(('user', 'hello there'))
        record = ConversationExtractor().extract(snapshot(main, url='https://chatgpt.com/'))
        assert record.id is None
        assert not record.can_deduplicate
