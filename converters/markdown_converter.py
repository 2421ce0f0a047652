"""Markdown converter for turning rendered transcript HTML into Markdown."""

import copy
import logging
import re
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger('chat_transcript_sync.converters.markdownconverter')

Fragment = Union[Tag, NavigableString]
Handler = Callable[[Tag, str], str]

HEADING_LEVELS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 5, 'h6': 6}


class MarkdownConverter:
    """
    Recursive HTML to Markdown converter.

    Each element is converted by first converting its children and joining
    them in document order, then applying the handler registered for the
    element's tag in ``self.handlers`` to that inner string. Tags without a
    handler (``html``, ``body``, ``div``, ``span`` and anything unknown) pass
    their inner string through unchanged, so conversion never fails.
    """

    # Host UI markers used for code block language detection
    CODE_BLOCK_WRAPPER_CLASS = 'bg-black'
    CODE_LANGUAGE_LABEL_CLASS = 'text-xs'
    LANGUAGE_CLASS_PREFIXES = ('language-', 'lang-')
    LANGUAGE_CLASS_PATTERN = re.compile(r'language-(\w+)')

    def __init__(self, logger: logging.Logger = None, config: Dict[str, Any] = None):
        """Initialize markdown converter with logger and configuration."""
        self.logger = logger or logging.getLogger('chat_transcript_sync.converters.markdownconverter')
        self.config = config or {}
        self.parser = self.config.get('parser', 'lxml')
        self.handlers: Dict[str, Handler] = self._build_handlers()

    def _build_handlers(self) -> Dict[str, Handler]:
        """Tag name -> handler table."""
        handlers: Dict[str, Handler] = {
            'strong': self.convert_strong,
            'b': self.convert_strong,
            'em': self.convert_em,
            'i': self.convert_em,
            'u': self.convert_u,
            's': self.convert_s,
            'strike': self.convert_s,
            'del': self.convert_s,
            'code': self.convert_code,
            'pre': self.convert_pre,
            'ul': self.convert_ul,
            'ol': self.convert_ol,
            'li': self.convert_li,
            'a': self.convert_a,
            'img': self.convert_img,
            'p': self.convert_p,
            'br': self.convert_br,
            'hr': self.convert_hr,
            'blockquote': self.convert_blockquote,
            'table': self.convert_table,
        }
        for tag, level in HEADING_LEVELS.items():
            handlers[tag] = partial(self.convert_heading, level)
        return handlers

    def convert(self, fragment: Optional[Fragment]) -> str:
        """
        Convert a document fragment to Markdown.

        The fragment is cloned before conversion because it may belong to a
        live document owned by the host.

        Args:
            fragment: BeautifulSoup tag or string, or None

        Returns:
            Markdown string with surrounding whitespace trimmed
        """
        if fragment is None:
            return ''

        clone = copy.copy(fragment)
        return self.process_node(clone).strip()

    def convert_html(self, html_content: str) -> str:
        """Parse an HTML string and convert the resulting document."""
        self.logger.debug("Converting HTML to markdown")
        soup = BeautifulSoup(html_content or '', self.parser)
        return self.process_node(soup).strip()

    def process_node(self, node: Any) -> str:
        """Recursively convert a node (no cloning, no trimming)."""
        if isinstance(node, PreformattedString):
            # Comments, CDATA, doctypes and processing instructions
            return ''

        if isinstance(node, NavigableString):
            return str(node)

        if not isinstance(node, Tag):
            return ''

        text = ''.join(self.process_node(child) for child in node.children)

        handler = self.handlers.get((node.name or '').lower())
        if handler is None:
            return text
        return handler(node, text)

    # Headings
    def convert_heading(self, level: int, el: Tag, text: str) -> str:
        return f"{'#' * level} {text}\n\n"

    # Inline formatting
    def convert_strong(self, el: Tag, text: str) -> str:
        return f'**{text}**'

    def convert_em(self, el: Tag, text: str) -> str:
        return f'*{text}*'

    def convert_u(self, el: Tag, text: str) -> str:
        # No Markdown equivalent, keep inline HTML
        return f'<u>{text}</u>'

    def convert_s(self, el: Tag, text: str) -> str:
        return f'~~{text}~~'

    # Code
    def convert_code(self, el: Tag, text: str) -> str:
        """Inline code, left raw when it is the body of a code block."""
        parent = el.parent
        if parent is not None and parent.name and parent.name.lower() == 'pre':
            return text
        return f'`{text}`'

    def convert_pre(self, el: Tag, text: str) -> str:
        """Fenced code block built from the literal code text, not the inner Markdown."""
        code_el = el.find('code')
        language = self.detect_language(el)
        code_content = code_el.get_text() if code_el is not None else el.get_text()
        return f'\n```{language}\n{code_content}\n```\n\n'

    # Lists
    def convert_ul(self, el: Tag, text: str) -> str:
        return self.process_list(el, ordered=False) + '\n'

    def convert_ol(self, el: Tag, text: str) -> str:
        return self.process_list(el, ordered=True) + '\n'

    def convert_li(self, el: Tag, text: str) -> str:
        # Item prefixes are applied by the enclosing list
        return text

    # Links and images
    def convert_a(self, el: Tag, text: str) -> str:
        href = el.get('href') or ''
        return f'[{text}]({href})'

    def convert_img(self, el: Tag, text: str) -> str:
        src = el.get('src') or ''
        alt = el.get('alt') or 'image'
        return f'![{alt}]({src})'

    # Blocks
    def convert_p(self, el: Tag, text: str) -> str:
        return f'{text}\n\n'

    def convert_br(self, el: Tag, text: str) -> str:
        return '\n'

    def convert_hr(self, el: Tag, text: str) -> str:
        return '\n---\n\n'

    def convert_blockquote(self, el: Tag, text: str) -> str:
        return '\n'.join(f'> {line}' for line in text.split('\n')) + '\n\n'

    def convert_table(self, el: Tag, text: str) -> str:
        return self.process_table(el) + '\n\n'

    def process_list(self, list_el: Tag, ordered: bool) -> str:
        """
        Format the direct ``li`` children of a list element.

        Args:
            list_el: ``ul`` or ``ol`` element
            ordered: Whether items get 1-based numeric prefixes

        Returns:
            Items joined by single newlines, without a trailing newline
        """
        items = [
            child for child in list_el.children
            if isinstance(child, Tag) and child.name and child.name.lower() == 'li'
        ]

        lines = []
        for index, item in enumerate(items):
            prefix = f'{index + 1}. ' if ordered else '- '
            lines.append(prefix + self.process_node(item).strip())
        return '\n'.join(lines)

    def process_table(self, table_el: Tag) -> str:
        """
        Format a table as a pipe table with a separator after the first row.

        Args:
            table_el: ``table`` element

        Returns:
            Table rows joined by newlines, or an empty string for no rows
        """
        rows = table_el.find_all('tr')
        if not rows:
            return ''

        result: List[str] = []
        for row_index, row in enumerate(rows):
            cells = row.find_all(['th', 'td'])
            cell_contents = [
                self.process_node(cell).strip().replace('|', '\\|')
                for cell in cells
            ]
            result.append('| ' + ' | '.join(cell_contents) + ' |')

            if row_index == 0:
                result.append('| ' + ' | '.join('---' for _ in cells) + ' |')

        return '\n'.join(result)

    def detect_language(self, pre_el: Tag) -> str:
        """
        Detect the language of a code block.

        Checks, in order: a ``language-``/``lang-`` class on the nested code
        element, the label the host UI renders above code blocks, and a
        ``language-<word>`` class on the block or any ancestor.

        Args:
            pre_el: ``pre`` element

        Returns:
            Language identifier, or an empty string
        """
        code_el = pre_el.find('code')
        if code_el is not None:
            for cls in self._classes(code_el):
                for prefix in self.LANGUAGE_CLASS_PREFIXES:
                    if cls.startswith(prefix):
                        return cls[len(prefix):]

        wrapper = self._closest(pre_el, lambda tag: self.CODE_BLOCK_WRAPPER_CLASS in self._classes(tag))
        if wrapper is not None:
            label = wrapper.find(class_=self.CODE_LANGUAGE_LABEL_CLASS)
            if label is not None:
                return label.get_text().strip().lower()

        hinted = self._closest(pre_el, lambda tag: 'language-' in ' '.join(self._classes(tag)))
        if hinted is not None:
            match = self.LANGUAGE_CLASS_PATTERN.search(' '.join(self._classes(hinted)))
            if match:
                return match.group(1)

        return ''

    @staticmethod
    def _classes(tag: Tag) -> List[str]:
        classes = tag.get('class') or []
        if isinstance(classes, str):
            classes = classes.split()
        return list(classes)

    @staticmethod
    def _closest(tag: Tag, predicate: Callable[[Tag], bool]) -> Optional[Tag]:
        """Return the tag itself or its nearest ancestor matching predicate."""
        current = tag
        while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
            if predicate(current):
                return current
            current = current.parent
        return None


def html_to_markdown(element: Optional[Fragment], logger: logging.Logger = None) -> str:
    """
    Convenience function converting a fragment with a default converter.

    Args:
        element: BeautifulSoup fragment, or None

    Returns:
        Trimmed Markdown string ('' for None)
    """
    return MarkdownConverter(logger=logger).convert(element)
