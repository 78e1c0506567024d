"""
The portfolio's default build configuration: sources in `src/`, site in
`dist/`, `assets/` passed through, the `image` shortcode, and HTML
minification.

Config files can import the pieces they want to reuse, or expose this module
wholesale with `folio -m folio.site`.
"""
from __future__ import annotations

from pathlib import Path

from .assets import PassthroughStep
from .core import InputBuildSettings, Rule, Shortcode, Transform
from .images import ImageShortcode
from .minify import HTMLMinifyTransform
from .pages import PageStep
from .paths import OutputDirPathCalc, REMatcher, WebIndexPathCalc


PAGE_PATTERN = r'.*\.(html|njk|jinja|md|markdown)'


def build_rules(layouts_dir: str = '_includes',
                passthrough_dir: str = 'assets') -> list[Rule]:
    """
    Rules for a portfolio site. Dotfiles and layouts are never emitted, files
    under @passthrough_dir are copied as-is, and pages are rendered into
    directory indexes.
    """
    return [
        # Ignore dotfiles anywhere in the input directory.
        Rule(REMatcher(r'(.*/)*\..*', parent_dir='input_dir'), None),
        # Layouts and partials are only ever used through pages.
        Rule(REMatcher(rf'{layouts_dir}/.*', parent_dir='input_dir'), None),
        Rule(
            REMatcher(rf'{passthrough_dir}/.*', parent_dir='input_dir'),
            [OutputDirPathCalc(), None],
            PassthroughStep()
        ),
        Rule(
            REMatcher(PAGE_PATTERN, parent_dir='input_dir'),
            [WebIndexPathCalc('output_dir', '.html'), None],
            PageStep(layouts_dir=layouts_dir)
        ),
    ]


def build_shortcodes() -> dict[str, Shortcode]:
    return {
        'image': ImageShortcode(
            output_subdir='assets/img',
            url_path='/assets/img/',
            formats=('png', 'webp'),
        ),
    }


def build_transforms() -> dict[str, Transform]:
    return {
        'htmlmin': HTMLMinifyTransform(),
    }


SETTINGS = InputBuildSettings(
    input_dir=Path('src'),
    output_dir=Path('dist'),
)
RULES = build_rules()
SHORTCODES = build_shortcodes()
TRANSFORMS = build_transforms()
