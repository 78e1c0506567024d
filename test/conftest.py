from html.parser import HTMLParser
from pathlib import Path

import pytest
from PIL import Image

from folio.core import BuildSettings


@pytest.fixture
def build_settings(tmp_path: Path):
    input_dir = tmp_path / 'src'
    input_dir.mkdir()
    return BuildSettings(
        input_dir=input_dir,
        output_dir=tmp_path / 'dist',
        purge_dirs=True
    )


def make_image(path: Path, size: tuple[int, int] = (1600, 900), mode: str = 'RGB'):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, 'teal').save(path)
    return path


class _TagCollector(HTMLParser):
    def __init__(self, tag: str):
        super().__init__()
        self.tag = tag
        self.found: list[dict[str, str | None]] = []

    def handle_starttag(self, tag, attrs):
        if tag == self.tag:
            self.found.append(dict(attrs))


def tag_attributes(html: str, tag: str):
    """
    Attributes of every @tag element in @html, regardless of attribute order
    or quoting.
    """
    collector = _TagCollector(tag)
    collector.feed(html)
    collector.close()
    return collector.found
