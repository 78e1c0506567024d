"""
Output transforms for reducing the load cost of generated pages.
"""
import re
from pathlib import Path

from .core import Transform
from .dependencies import PipDependency


SHORT_DOCTYPE = '<!doctype html>'
_DOCTYPE_RE = re.compile(r'^\s*<!doctype[^>]*>', re.IGNORECASE)


class HTMLMinifyTransform(Transform):
    """
    A simple but fast HTML minification transform using minify-html. Uses the
    short doctype, strips comments, and collapses insignificant whitespace.
    Output that isn't HTML passes through untouched.
    """
    extension = '.html'
    minify_css = False
    minify_js = False

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('minify-html', check_name='minify_html'),
        }

    def use_short_doctype(self, content: str):
        """
        Replace a leading doctype, whatever its flavor, with `<!doctype html>`.
        """
        return _DOCTYPE_RE.sub(SHORT_DOCTYPE, content, count=1)

    def __call__(self, content: str, output_path: Path) -> str:
        if not str(output_path).endswith(self.extension):
            return content

        from minify_html import minify
        minified = minify(
            content,
            minify_css=self.minify_css,
            minify_js=self.minify_js,
            keep_comments=False,
            keep_closing_tags=True,
            keep_html_and_head_opening_tags=True,
        )
        return self.use_short_doctype(minified)
