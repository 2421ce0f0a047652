"""Tests for document assembly and filename sanitization."""

import pytest

from converters import convert_conversation
from converters.conversation_formatter import build_filename, format_conversation, sanitize_filename
from models import ConversationRecord, Message, MessageRole


def make_record(title='Greeting', date='', url='', messages=None):
    if messages is None:
        messages = [
            Message(MessageRole.USER, 'Hi'),
            Message(MessageRole.ASSISTANT, 'Hello'),
        ]
    return ConversationRecord(id='abc123', title=title, date=date, url=url, messages=messages)


class TestFormatConversation:
    """Test Markdown document layout."""

    def test_document_without_metadata(self):
        document = format_conversation(make_record())
        assert document == (
            '# Greeting\n\n---\n\n'
            '## User\n\nHi\n\n---\n\n'
            '## Assistant\n\nHello\n\n---\n'
        )

    def test_document_with_metadata(self):
        record = make_record(date='2024-05-01', url='https://chatgpt.com/c/abc123')
        document = format_conversation(record)
        assert document.startswith(
            '# Greeting\n\n'
            '**Date**: 2024-05-01\n'
            '**URL**: https://chatgpt.com/c/abc123\n\n'
            '---\n\n## User\n\n'
        )

    def test_missing_title_uses_placeholder(self):
        document = format_conversation(make_record(title=''))
        assert document.startswith('# Untitled Conversation\n')

    def test_single_trailing_newline(self):
        document = format_conversation(make_record(messages=[Message(MessageRole.USER, 'only\n\n')]))
        assert document.endswith('---\n')
        assert not document.endswith('\n\n')

    def test_messages_keep_order(self):
        messages = [
            Message(MessageRole.ASSISTANT, 'first'),
            Message(MessageRole.USER, 'second'),
            Message(MessageRole.ASSISTANT, 'third'),
        ]
        document = format_conversation(make_record(messages=messages))
        assert document.index('first') < document.index('second') < document.index('third')
        assert document.count('## Assistant') == 2


class TestSanitizeFilename:
    """Test filename sanitization."""

    @pytest.mark.parametrize('title,expected', [
        ('Hello: World/Test', 'Hello_WorldTest'),
        ('C:/x', 'Cx'),
        ('Q&A: "quotes"', 'Q&A_quotes'),
        ('  spaced   out  ', 'spaced_out'),
        ('a<>b', 'ab'),
        ('what?*', 'what'),
        ('__edge__', 'edge'),
        ('plain', 'plain'),
    ])
    def test_sanitize(self, title, expected):
        assert sanitize_filename(title) == expected

    @pytest.mark.parametrize('title', ['', '???', '   ', '<>:"/\\|?*'])
    def test_empty_result_falls_back(self, title):
        assert sanitize_filename(title) == 'untitled'

    def test_truncated_to_100_characters(self):
        assert len(sanitize_filename('x' * 250)) == 100

    def test_result_has_no_invalid_characters(self):
        name = sanitize_filename('a<b>c:d"e/f\\g|h?i*j k')
        assert not any(char in name for char in '<>:"/\\|?* ')

    def test_build_filename(self):
        assert build_filename(make_record(title='Trip plan: Rome')) == 'Trip_plan_Rome.md'


class TestConvertConversation:
    """Test the filename/document convenience function."""

    def test_returns_filename_and_document(self):
        filename, document = convert_conversation(make_record())
        assert filename == 'Greeting.md'
        assert document.startswith('# Greeting')
