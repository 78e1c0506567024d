"""
Markdown rendering for pages, based on markdown-it-py with Pygments
highlighting for fenced code.
"""
from __future__ import annotations

import typing as t

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml, unescapeAll
from markdown_it.renderer import RendererHTML

if t.TYPE_CHECKING:
    from collections.abc import Sequence
    from markdown_it.token import Token
    from markdown_it.utils import EnvType, OptionsDict


class FolioRendererHTML(RendererHTML):
    """
    markdown-it-py HTML renderer which emits Pygments output without wrapping
    it in a second `<pre><code>`.
    """
    # https://github.com/executablebooks/markdown-it-py/issues/256
    def fence(self, tokens: Sequence[Token], idx: int, options: OptionsDict, env: EnvType):
        token = tokens[idx]
        info = unescapeAll(token.info).strip() if token.info else ''
        lang_name = info.split(maxsplit=1)[0] if info else ''

        highlighted = options.highlight and options.highlight(token.content, lang_name, '')
        if highlighted:
            return highlighted
        return f'<pre><code>{escapeHtml(token.content)}</code></pre>\n'


def highlight_code(code: str, lang: str, _lang_attrs: str, **pygments_params: t.Any):
    """
    Highlight @code with Pygments, returning HTML markup, or '' when no lexer
    fits.
    """
    from pygments import highlight
    from pygments.formatters.html import HtmlFormatter
    from pygments.lexers import get_lexer_by_name, guess_lexer
    from pygments.util import ClassNotFound
    try:
        lexer = get_lexer_by_name(lang)
    except ClassNotFound:
        try:
            lexer = guess_lexer(code)
        except ClassNotFound:
            return ''

    return highlight(code, lexer, HtmlFormatter(**pygments_params))


def build_markdown_renderer(code_highlighting: bool = True,
                            typography: bool = True,
                            pygments_params: dict[str, t.Any] | None = None) -> t.Callable[[str], str]:
    """
    Create a CommonMark renderer with tables, strikethrough and, optionally,
    smart typography and code highlighting. Raw HTML is passed through, so
    shortcode output survives.
    """
    params = pygments_params or {}

    def highlight(code: str, lang: str, lang_attrs: str):
        return highlight_code(code, lang, lang_attrs, **params)

    processor = MarkdownIt(
        'commonmark',
        {
            'typographer': typography,
            'highlight': highlight if code_highlighting else None,
        },
        renderer_cls=FolioRendererHTML
    )
    processor.enable(['strikethrough', 'table'])
    if typography:
        processor.enable(['smartquotes', 'replacements'])

    def convert(md_string: str) -> str:
        return processor.render(md_string)

    return convert
