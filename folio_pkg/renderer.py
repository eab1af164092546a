"""
Body renderers: convert the text that follows a metadata block into HTML.
"""

import html
import re

import mistune

from .metadata import slugify

HEADING_PATTERN = re.compile(r'<(h[1-6])>(.*?)</\1>', re.DOTALL)
TAG_PATTERN = re.compile(r'<[^>]+>')


def heading_text(inner_html):
    """Plain text of a heading's inner HTML."""
    return html.unescape(TAG_PATTERN.sub('', inner_html)).strip()


def anchor_headings(rendered):
    """Give every bare ``<h1>``..``<h6>`` an ``id`` and ``class`` slugified from its text."""
    def repl(match):
        tag, inner = match.group(1), match.group(2)
        anchor = slugify(heading_text(inner))
        if not anchor:
            return match.group(0)
        return f'<{tag} id="{anchor}" class="{anchor}">{inner}</{tag}>'

    return HEADING_PATTERN.sub(repl, rendered)


class BodyRenderer:
    """Interface for body renderers; subclasses implement ``render``."""

    name = None

    def render(self, text: str) -> str:
        raise NotImplementedError


class MarkdownRenderer(BodyRenderer):
    """Markdown to HTML via mistune, with tables, strikethrough and autolinks."""

    name = 'markdown'
    plugins = ['table', 'strikethrough', 'url']

    def __init__(self):
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)

            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                if info:
                    language = mistune.escape(info.split()[0])
                    return f'<pre><code class="language-{language}">{escaped_code}</code></pre>\n'
                return f'<pre><code>{escaped_code}</code></pre>\n'

        return mistune.create_markdown(renderer=CustomRenderer(), plugins=self.plugins)

    def render(self, text):
        return anchor_headings(self.markdown_parser(text))


class PlainTextRenderer(BodyRenderer):
    """Escapes the body and wraps each blank-line separated block in ``<p>``."""

    name = 'plain'

    def render(self, text):
        blocks = [block.strip() for block in re.split(r'\n\s*\n', text)]
        return ''.join(
            '<p>{}</p>\n'.format(html.escape(block).replace('\n', '<br>\n'))
            for block in blocks if block
        )


RENDERERS = {
    MarkdownRenderer.name: MarkdownRenderer,
    PlainTextRenderer.name: PlainTextRenderer,
}


def create_renderer(name: str = 'markdown') -> BodyRenderer:
    """Construct the renderer registered under ``name``."""
    try:
        return RENDERERS[name or 'markdown']()
    except KeyError:
        raise ValueError(f"Unknown renderer '{name}'. Available: {', '.join(sorted(RENDERERS))}")
