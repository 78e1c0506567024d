import datetime
from pathlib import Path

import pytest

from conftest import make_image
from folio.components.frontmatter import simple_frontmatter_parser, split_frontmatter
from folio.core import BuildSettings, Context, Rule, Transform
from folio.images import ImageShortcode
from folio.pages import PageStep, coerce_date, page_url, permalink_path
from folio.paths import REMatcher, WebIndexPathCalc


class MarkerTransform(Transform):
    def __call__(self, content: str, output_path: Path) -> str:
        return f'{content}<!-- {output_path.name} -->'


def write(path: Path, text: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def context(build_settings: BuildSettings):
    return Context(
        build_settings,
        [Rule(REMatcher(r'.*\.(html|md)', parent_dir='input_dir'), WebIndexPathCalc('output_dir', '.html'), PageStep())],
        shortcodes={'image': ImageShortcode()},
    )


def render(context: Context, rel: str) -> Path:
    path = context['input_dir'] / rel
    output_path = WebIndexPathCalc('output_dir', '.html')(context, path, None)
    context.rules[0].step(path, [output_path])
    return output_path


def test_split_frontmatter():
    assert split_frontmatter('---\ntitle: Hi\n---\nbody\n') == ('title: Hi\n', 'body\n')
    assert split_frontmatter('no front matter') == (None, 'no front matter')
    with pytest.raises(ValueError):
        split_frontmatter('---\ntitle: Hi\n')


def test_simple_frontmatter_parser():
    assert simple_frontmatter_parser('title: Hi: there\nlayout: base\n') == {
        'title': 'Hi: there',
        'layout': 'base',
    }


@pytest.mark.parametrize('output,expected', [
    ('index.html', '/'),
    ('about/index.html', '/about/'),
    ('feed.xml', '/feed.xml'),
])
def test_page_url(output: str, expected: str):
    assert page_url(Path('dist') / output, Path('dist')) == expected


@pytest.mark.parametrize('permalink,expected', [
    ('/', 'index.html'),
    ('/about/', 'about/index.html'),
    ('/feed.xml', 'feed.xml'),
])
def test_permalink_path(permalink: str, expected: str):
    assert permalink_path(permalink, Path('dist')) == Path('dist') / expected


def test_coerce_date(tmp_path: Path):
    assert coerce_date(datetime.date(2021, 3, 4), tmp_path) == datetime.date(2021, 3, 4)
    assert coerce_date('2021-03-04', tmp_path) == datetime.date(2021, 3, 4)
    assert coerce_date('2021-03-04T10:30:00', tmp_path) == datetime.datetime(2021, 3, 4, 10, 30)
    source = write(tmp_path / 'page.html', 'x')
    assert coerce_date(None, source) == datetime.date.fromtimestamp(source.stat().st_mtime)


def test_render_html_page_with_layout(context: Context):
    write(context['input_dir'] / '_includes' / 'base.html',
          '<title>{{ title }}</title><main>{{ content }}</main><a href="{{ page.url }}">self</a>')
    write(context['input_dir'] / 'about.html',
          '---\ntitle: About & more\nlayout: base.html\n---\n<p>{{ 1 + 1 }}</p>\n')

    output = render(context, 'about.html')

    assert output == context['output_dir'] / 'about' / 'index.html'
    assert output.read_text() == (
        '<title>About &amp; more</title><main><p>2</p></main><a href="/about/">self</a>'
    )


def test_layout_chain(context: Context):
    write(context['input_dir'] / '_includes' / 'base.html', '<body class="{{ theme }}">{{ content }}</body>')
    write(context['input_dir'] / '_includes' / 'post.html',
          '---\nlayout: base\ntheme: dark\n---\n<article><h1>{{ title }}</h1>{{ content }}</article>')
    write(context['input_dir'] / 'posts' / 'hello.md',
          '---\ntitle: Hello\nlayout: post\ndate: 2022-05-01\n---\nSome *text*.\n')

    output = render(context, 'posts/hello.md')

    assert output == context['output_dir'] / 'posts' / 'hello' / 'index.html'
    assert output.read_text() == (
        '<body class="dark"><article><h1>Hello</h1><p>Some <em>text</em>.</p>\n</article></body>'
    )


def test_page_data_overrides_layout_data(context: Context):
    write(context['input_dir'] / '_includes' / 'base.html', '---\ntheme: dark\n---\n{{ theme }}')
    write(context['input_dir'] / 'index.html', '---\nlayout: base\ntheme: light\n---\n')
    assert render(context, 'index.html').read_text() == 'light'


def test_layout_cycle(context: Context):
    write(context['input_dir'] / '_includes' / 'a.html', '---\nlayout: b\n---\n{{ content }}')
    write(context['input_dir'] / '_includes' / 'b.html', '---\nlayout: a\n---\n{{ content }}')
    write(context['input_dir'] / 'index.html', '---\nlayout: a\n---\nx')
    with pytest.raises(ValueError):
        render(context, 'index.html')


def test_markdown_code_highlighting(context: Context):
    write(context['input_dir'] / 'post.md', '```python\nprint("hi")\n```\n')
    text = render(context, 'post.md').read_text()
    assert '<div class="highlight">' in text
    assert '<pre><code><div' not in text


def test_markdown_image_shortcode(context: Context):
    make_image(context['input_dir'] / 'img' / 'me.png', (900, 600))
    write(context['input_dir'] / 'index.md',
          "# Me\n\n{{ image('img/me.png', 'Portrait', 'avatar', widths=[300]) }}\n")

    text = render(context, 'index.md').read_text()

    assert '<h1>Me</h1>' in text
    assert '<picture class="avatar">' in text
    assert 'width="300" height="200" alt="Portrait" loading="lazy" decoding="async">' in text
    assert '&lt;picture' not in text


def test_permalink(context: Context):
    write(context['input_dir'] / 'feed.html', '---\npermalink: /feed.xml\n---\n<feed/>')
    render(context, 'feed.html')
    assert (context['output_dir'] / 'feed.xml').read_text() == '<feed/>'
    assert not (context['output_dir'] / 'feed').exists()


def test_permalink_false(context: Context):
    write(context['input_dir'] / 'draft.html', '---\npermalink: false\n---\nwip')
    output = render(context, 'draft.html')
    assert not output.exists()


def test_transforms_applied(build_settings: BuildSettings):
    context = Context(
        build_settings,
        [Rule(REMatcher(r'.*\.html'), WebIndexPathCalc('output_dir'), PageStep())],
        transforms={'marker': MarkerTransform()},
    )
    write(context['input_dir'] / 'index.html', 'hello')
    assert render(context, 'index.html').read_text() == 'hello<!-- index.html -->'


def test_page_globals(build_settings: BuildSettings):
    context = Context(
        build_settings,
        [Rule(REMatcher(r'.*\.html'), WebIndexPathCalc('output_dir'), PageStep(jinja_globals={'site': 'folio'}))],
    )
    write(context['input_dir'] / 'index.html',
          '---\ndate: 2020-01-02\n---\n{{ site }} {{ page.date.year }} {{ page.input_path }}')
    assert render(context, 'index.html').read_text() == 'folio 2020 index.html'


def test_page_written_to_every_output(context: Context):
    write(context['input_dir'] / 'index.html', '---\ntitle: Home\n---\n<h1>{{ title }}</h1>')
    outputs = [context['output_dir'] / 'index.html', context['output_dir'] / 'home' / 'index.html']

    context.rules[0].step(context['input_dir'] / 'index.html', outputs)

    assert [o.read_text() for o in outputs] == ['<h1>Home</h1>', '<h1>Home</h1>']
