"""
Steps for rendering site pages: Jinja templates and Markdown, with front
matter, layouts, shortcodes, and output transforms.
"""
from __future__ import annotations

import datetime
import shutil
import typing as t
from pathlib import Path

from .components.frontmatter import (
    FrontMatterParser, FrontMatterParserName, get_frontmatter_parser, split_frontmatter,
)
from .core import Step
from .dependencies import PipDependency

if t.TYPE_CHECKING:
    from jinja2 import Environment


MARKDOWN_SUFFIXES = {'.md', '.markdown'}


def page_url(output_path: Path, output_dir: Path):
    """
    Calculate the site URL of @output_path. `index.html` files are addressed
    by their directory.
    """
    rel = output_path.relative_to(output_dir)
    if rel.name == 'index.html':
        parent = rel.parent.as_posix()
        return '/' if parent == '.' else f'/{parent}/'
    return '/' + rel.as_posix()


def permalink_path(permalink: str, output_dir: Path):
    """
    Turn a permalink URL into an output path. URLs ending in a slash get an
    `index.html`.
    """
    rel = permalink.strip('/')
    if not rel or permalink.endswith('/'):
        rel = f'{rel}/index.html' if rel else 'index.html'
    return output_dir / rel


def coerce_date(value: t.Any, path: Path) -> datetime.date:
    """
    Normalize a front matter `date` into a `datetime.date` (or `datetime`).
    Pages without a date use their source file's modification date.
    """
    if value is None:
        return datetime.date.fromtimestamp(path.stat().st_mtime)
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        return datetime.datetime.fromisoformat(text)


class PageStep(Step):
    """
    A Step rendering a page source into HTML.

    The page body is rendered as a Jinja template with every shortcode of the
    Context available as a global function, then, for Markdown sources,
    converted from Markdown. The result is wrapped in the layout named by the
    `layout` front matter key, if any, and finally run through the Context's
    output transforms.
    """
    encoding = 'utf-8'
    newline = '\n'
    layouts_dir = '_includes'
    default_layout_suffix = '.html'

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('jinja2'),
            PipDependency('markdown-it-py', check_name='markdown_it'),
            PipDependency('Pygments', check_name='pygments'),
            PipDependency('ruamel.yaml'),
        }

    def __init__(self,
                 jinja_env: Environment | None = None,
                 jinja_globals: dict[str, t.Any] | None = None,
                 *,
                 frontmatter: FrontMatterParserName | FrontMatterParser = 'yaml',
                 layouts_dir: str | None = None,
                 code_highlighting: bool = True,
                 pygments_params: dict[str, t.Any] | None = None):
        """
        :param jinja_env: A custom Jinja2 `Environment`. A reasonable default
            loading from the input directory will be provided if not specified.
        :param jinja_globals: Extra globals for every page and layout.
        :param frontmatter: The front matter format, or a parser function.
        :param layouts_dir: Directory holding layouts, relative to the input
            directory.
        :param code_highlighting: Whether to highlight fenced code in Markdown.
        :param pygments_params: Parameters to supply to
            `pygments.formatters.html.HtmlFormatter`.
        """
        self._env = jinja_env
        self._custom_env = jinja_env is not None
        self._extra_globals = jinja_globals or {}
        self.frontmatter_parser = get_frontmatter_parser(frontmatter)
        self.layouts_dir = layouts_dir or self.layouts_dir
        self.code_highlighting = code_highlighting
        self.pygments_params = pygments_params or {}
        self._md_processor: t.Callable[[str], str] | None = None

    def bind(self, context):
        super().bind(context)
        # The default loader points at the input directory of the bound Context.
        if not self._custom_env:
            self._env = None

    @property
    def env(self):
        """
        Returns the Jinja `Environment` for this Step, creating and caching it
        if necessary. Shortcodes are installed as globals.
        """
        if not self._env:
            from jinja2 import Environment, FileSystemLoader, select_autoescape
            self._env = Environment(
                loader=FileSystemLoader([
                    self.context['input_dir'] / self.layouts_dir,
                    self.context['input_dir'],
                ]),
                autoescape=select_autoescape(default_for_string=True),
            )
        self._env.globals.update(self.context.shortcodes)
        self._env.globals.update(self._extra_globals)
        return self._env

    @property
    def md_processor(self):
        """
        Returns the Markdown processor for this Step, creating it if necessary.
        """
        if not self._md_processor:
            from .components.md_rendering import build_markdown_renderer
            self._md_processor = build_markdown_renderer(
                code_highlighting=self.code_highlighting,
                pygments_params=self.pygments_params,
            )
        return self._md_processor

    def load_source(self, path: Path) -> tuple[dict[str, t.Any], str]:
        """
        Read a page or layout, returning its front matter and body.
        """
        raw_meta, body = split_frontmatter(path.read_text(self.encoding))
        meta = self.frontmatter_parser(raw_meta) if raw_meta else {}
        return dict(meta), body

    def render_string(self, source: str, data: dict[str, t.Any]):
        from markupsafe import Markup
        return Markup(self.env.from_string(source).render(**data))

    def layout_path(self, layout: str):
        path = self.context['input_dir'] / self.layouts_dir / layout
        if not path.suffix:
            path = path.with_suffix(self.default_layout_suffix)
        return path

    def apply_layouts(self, content: str, data: dict[str, t.Any]):
        """
        Wrap @content in the layout chain starting at `data['layout']`. Page
        data takes precedence over layout front matter, except for the
        `layout` key that continues the chain.
        """
        seen: set[str] = set()
        layout = data.get('layout')
        while layout:
            if layout in seen:
                raise ValueError(f'Layout {layout!r} includes itself!')
            seen.add(layout)
            layout_meta, body = self.load_source(self.layout_path(layout))
            next_layout = layout_meta.get('layout')
            data = {**layout_meta, **data, 'layout': next_layout, 'content': content}
            content = self.render_string(body, data)
            layout = next_layout
        return content

    def __call__(self, path: Path, output_paths: list[Path]):
        meta, body = self.load_source(path)

        permalink = meta.get('permalink')
        if permalink is False:
            return
        if permalink:
            output_paths = [permalink_path(str(permalink), self.context['output_dir'])]

        meta['date'] = coerce_date(meta.get('date'), path)
        data = {
            **meta,
            'page': {
                'url': page_url(output_paths[0], self.context['output_dir']),
                'input_path': path.relative_to(self.context['input_dir']).as_posix(),
                'output_path': output_paths[0],
                'date': meta['date'],
            },
        }

        content = self.render_string(body, data)
        if path.suffix in MARKDOWN_SUFFIXES:
            from markupsafe import Markup
            content = Markup(self.md_processor(str(content)))
        content = self.apply_layouts(content, data)

        rendered = self.context.apply_transforms(str(content), output_paths[0])
        self.write_outputs(rendered, output_paths)

    def write_outputs(self, rendered: str, output_paths: list[Path]):
        """
        Write @rendered to the first output path and copy it to the rest.
        """
        first, *others = output_paths
        for o_path in output_paths:
            o_path.parent.mkdir(parents=True, exist_ok=True)
        first.write_text(rendered, self.encoding, newline=self.newline)
        for o_path in others:
            shutil.copy(first, o_path)
