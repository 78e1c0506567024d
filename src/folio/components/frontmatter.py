"""
Front matter parsing for page sources.

A page may start with a block fenced by `---` lines; everything inside is
metadata and everything after is the page body.
"""
import tomllib
import typing as t


FrontMatterParser = t.Callable[[str], dict]
FrontMatterParserName = t.Literal['simple', 'toml', 'yaml']

FENCE = '---'


def simple_frontmatter_parser(content: str) -> dict:
    """
    Read metadata in a very simple YAML-like `key: value` format, without
    value parsing.
    """
    meta = {}
    for line in content.splitlines():
        if ':' not in line:
            break
        key, value = line.split(':', 1)
        if not key.strip().isidentifier():
            break
        meta[key.strip()] = value.strip()
    return meta


def get_toml_frontmatter_parser():
    return tomllib.loads


def get_yaml_frontmatter_parser():
    from ruamel.yaml import YAML
    yaml = YAML(typ='safe')

    def parse(content: str) -> dict:
        return yaml.load(content) or {}

    return parse


FRONTMATTER_PARSER_FACTORIES: dict[FrontMatterParserName, t.Callable[[], FrontMatterParser]] = {
    'simple': lambda: simple_frontmatter_parser,
    'toml': get_toml_frontmatter_parser,
    'yaml': get_yaml_frontmatter_parser,
}


def get_frontmatter_parser(parser: FrontMatterParserName | FrontMatterParser) -> FrontMatterParser:
    if callable(parser):
        return parser
    return FRONTMATTER_PARSER_FACTORIES[parser]()


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """
    Split @text into its raw front matter block (None if it has none) and
    its body.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FENCE:
        return None, text
    for i, line in enumerate(lines[1:], 1):
        if line.rstrip() == FENCE:
            return ''.join(lines[1:i]), ''.join(lines[i + 1:])
    raise ValueError('Front matter block is never closed!')
