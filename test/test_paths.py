from __future__ import annotations

import re
from pathlib import Path

import pytest

from folio.core import BuildSettings, Context
from folio.paths import DirPathCalc, OutputDirPathCalc, REMatcher, WebIndexPathCalc


INPUT_PATH = Path('src')
OUTPUT_PATH = Path('dist')
EXTERNAL_PATH = Path('external')


@pytest.fixture
def dummy_context():
    return Context(
        BuildSettings(
            input_dir=INPUT_PATH,
            output_dir=OUTPUT_PATH,
            purge_dirs=False
        ),
        []
    )


@pytest.mark.parametrize('config,input,expected', [
    (('output_dir',), INPUT_PATH / 'foo.txt', OUTPUT_PATH / 'foo.txt'),
    ((OUTPUT_PATH,), INPUT_PATH / 'foo.txt', OUTPUT_PATH / 'foo.txt'),
    ((EXTERNAL_PATH,), INPUT_PATH / 'foo.txt', EXTERNAL_PATH / 'foo.txt'),
    (('output_dir', '.html'), INPUT_PATH / 'foo.md', OUTPUT_PATH / 'foo.html'),
    (('output_dir', '.html'), INPUT_PATH / 'posts' / 'foo.j.md', OUTPUT_PATH / 'posts' / 'foo.j.html'),
])
def test_dir_path_calc(config: tuple, input: Path, expected: Path, dummy_context: Context):
    calc = DirPathCalc(*config)
    assert calc(dummy_context, input, None) == expected


@pytest.mark.parametrize('config,input,regex,expected', [
    (('output_dir',), INPUT_PATH / 'foo.page.html', r'.*(?P<ext>\.page\.html)', OUTPUT_PATH / 'foo.page.html'),
    (('output_dir', '.html'), INPUT_PATH / 'foo.page.html', r'.*(?P<ext>\.page\.html)', OUTPUT_PATH / 'foo.html'),
    (('output_dir', '.html'), INPUT_PATH / 'foo.njk', r'.*/(?P<stem>f\w+)\.njk', OUTPUT_PATH / 'foo.html'),
])
def test_dir_path_calc_regex(config: tuple, input: Path, regex: str, expected: Path, dummy_context: Context):
    calc = DirPathCalc(*config)
    match = re.match(regex, input.as_posix())
    assert calc(dummy_context, input, match) == expected


@pytest.mark.parametrize('config,input,expected', [
    ((), INPUT_PATH / 'foo.txt', OUTPUT_PATH / 'foo.txt'),
    (('.html',), INPUT_PATH / 'foo.md', OUTPUT_PATH / 'foo.html'),
    ((None, lambda p: p.with_stem(p.stem.upper())), INPUT_PATH / 'foo.txt', OUTPUT_PATH / 'FOO.txt'),
])
def test_output_dir_path_calc(config: tuple, input: Path, expected: Path, dummy_context: Context):
    calc = OutputDirPathCalc(*config)
    assert calc(dummy_context, input, None) == expected


@pytest.mark.parametrize('config,input,expected', [
    ((), INPUT_PATH / 'about.html', OUTPUT_PATH / 'about' / 'index.html'),
    ((), INPUT_PATH / 'index.html', OUTPUT_PATH / 'index.html'),
    (('output_dir', '.html'), INPUT_PATH / 'posts' / 'hello.md', OUTPUT_PATH / 'posts' / 'hello' / 'index.html'),
    (('output_dir', '.html'), INPUT_PATH / 'posts' / 'index.md', OUTPUT_PATH / 'posts' / 'index.html'),
    (('output_dir', '.zip', lambda p: p.with_stem(p.stem * 2)), INPUT_PATH / 'foo.html', OUTPUT_PATH / 'foofoo' / 'index.zip'),
])
def test_web_index_path_calc(config: tuple, input: Path, expected: Path, dummy_context: Context):
    calc = WebIndexPathCalc(*config)
    assert calc(dummy_context, input, None) == expected


@pytest.mark.parametrize('config,input,expected', [
    ((r'.*\.html',), INPUT_PATH / 'foo.html', {}),
    ((r'f.*\.html',), INPUT_PATH / 'foo.html', None),
    ((r'f.*\.html', 0, 'input_dir'), INPUT_PATH / 'foo.html', {}),
    ((r'assets/.*', 0, 'input_dir'), INPUT_PATH / 'assets' / 'css' / 'site.css', {}),
    ((r'assets/.*', 0, 'input_dir'), INPUT_PATH / 'pages' / 'assets.html', None),
    ((r'.*(?P<ext>\.j\.html)', 0, 'input_dir'), INPUT_PATH / 'foo.j.html', {'ext': '.j.html'}),
    ((r'.*(?P<ext>\.j\.html)', 0, 'output_dir'), INPUT_PATH / 'foo.j.html', None),
])
def test_re_matcher(config: tuple, input: Path, expected: dict | None, dummy_context: Context):
    matcher = REMatcher(*config)
    result = matcher(dummy_context, input)
    if result:
        assert result.groupdict() == expected
    else:
        assert result is expected


def test_matcher_composition(dummy_context: Context):
    html = REMatcher(r'.*\.html', parent_dir='input_dir')
    posts = REMatcher(r'posts/.*', parent_dir='input_dir')
    post_path = INPUT_PATH / 'posts' / 'hello.html'
    page_path = INPUT_PATH / 'about.html'

    assert (html & posts)(dummy_context, post_path)
    assert not (html & posts)(dummy_context, page_path)
    assert (posts | html)(dummy_context, page_path)
