"""
Responsive image generation: Pillow-backed resizing and re-encoding, and the
`image` shortcode which turns the results into `<picture>` markup.
"""
from __future__ import annotations

import hashlib
import typing as t
from pathlib import Path

from markupsafe import Markup

from .attributes import stringify_attributes
from .core import Shortcode
from .dependencies import PipDependency

if t.TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from PIL.Image import Image


DEFAULT_WIDTHS = (400, 800, 1280)
DEFAULT_FORMATS = ('png', 'webp')
DEFAULT_SIZES = '100vw'

FORMAT_ALIASES = {'jpg': 'jpeg'}
MIME_TYPES = {
    'webp': 'image/webp',
    'png': 'image/png',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'avif': 'image/avif',
}
PILLOW_FORMATS = {
    'webp': 'WEBP',
    'png': 'PNG',
    'jpeg': 'JPEG',
    'gif': 'GIF',
    'avif': 'AVIF',
}

VariantSet = dict[str, list['ImageVariant']]


class ImageSourceNotFound(FileNotFoundError):
    """
    Raised when the source of a responsive image does not exist.
    """


class ImageVariant(t.NamedTuple):
    """
    One resized, re-encoded rendition of a source image.
    """
    format: str
    width: int
    height: int
    url: str
    path: Path

    @property
    def source_type(self):
        return MIME_TYPES[self.format]

    @property
    def srcset(self):
        return f'{self.url} {self.width}w'


def normalize_format(image_format: str) -> str:
    """
    Lowercase @image_format and resolve aliases like `jpg`.
    """
    image_format = image_format.lower().lstrip('.')
    image_format = FORMAT_ALIASES.get(image_format, image_format)
    if image_format not in MIME_TYPES:
        raise ValueError(f'Unsupported image format {image_format!r}!')
    return image_format


def select_widths(requested: Iterable[int], source_width: int) -> list[int]:
    """
    Clamp @requested widths to @source_width so images are never upscaled,
    dropping duplicates and sorting ascending.
    """
    widths = set()
    for width in requested:
        width = int(width)
        if width <= 0:
            raise ValueError(f'Image widths must be positive, not {width}!')
        widths.add(min(width, source_width))
    return sorted(widths)


def source_digest(path: Path, _bufsize=2**18):
    """
    Short sha1 digest of a file's contents, used to name its variants.
    """
    digest = hashlib.sha1()
    with path.open('rb') as file:
        while chunk := file.read(_bufsize):
            digest.update(chunk)
    return digest.hexdigest()[:10]


def _prepare_mode(img: Image, image_format: str):
    if image_format == 'jpeg' and img.mode not in ('RGB', 'L', 'CMYK'):
        return img.convert('RGB')
    if image_format in ('webp', 'avif') and img.mode not in ('RGB', 'RGBA'):
        return img.convert('RGBA' if 'A' in img.mode else 'RGB')
    return img


class ImageProcessor:
    """
    Writes resized and re-encoded variants of source images into
    @output_dir, addressed by URLs starting with @url_path.

    Results are memoized per source, width list, and format list for the
    lifetime of the processor, and variant files already on disk are reused.
    """
    def __init__(self, output_dir: Path, url_path: str = '/assets/img/'):
        self.output_dir = output_dir
        self.url_path = url_path if url_path.endswith('/') else url_path + '/'
        self._cache: dict[tuple[Path, tuple[int, ...], tuple[str, ...]], VariantSet] = {}

    def generate(self, src: Path, widths: Sequence[int], formats: Sequence[str]) -> VariantSet:
        """
        Produce every requested width of @src in every requested format.

        :return: A dict keyed by format, in the order the formats were given,
            each holding that format's variants in ascending width order.
        """
        src = Path(src)
        if not src.is_file():
            raise ImageSourceNotFound(f'Image source {src} does not exist!')

        formats = tuple(dict.fromkeys(normalize_format(f) for f in formats))
        key = (src.resolve(), tuple(widths), formats)
        if key in self._cache:
            return self._cache[key]

        from PIL import Image, ImageOps

        image_id = source_digest(src)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        results: VariantSet = {}
        with Image.open(src) as original:
            img = ImageOps.exif_transpose(original)
            if img.mode == 'P':
                img = img.convert('RGBA')

            for image_format in formats:
                variants = results[image_format] = []
                for width in select_widths(widths, img.width):
                    height = max(1, round(img.height * width / img.width))
                    filename = f'{image_id}-{width}.{image_format}'
                    out_path = self.output_dir / filename
                    if not out_path.exists():
                        resized = img if width == img.width else img.resize(
                            (width, height),
                            Image.Resampling.LANCZOS
                        )
                        resized = _prepare_mode(resized, image_format)
                        resized.save(out_path, format=PILLOW_FORMATS[image_format])
                    variants.append(ImageVariant(
                        image_format,
                        width,
                        height,
                        self.url_path + filename,
                        out_path,
                    ))

        self._cache[key] = results
        return results


def render_picture(variant_sets: Mapping[str, Sequence[ImageVariant]],
                   alt: str,
                   class_name: str | None = None,
                   sizes: str = DEFAULT_SIZES) -> str:
    """
    Assemble `<picture>` markup from @variant_sets.

    Every format after the first gets a `<source>`; the largest variant of the
    first format becomes the fallback `<img>`.
    """
    formats = list(variant_sets)
    picture_attributes = stringify_attributes({'class': class_name})
    lines = [f'<picture {picture_attributes}>' if picture_attributes else '<picture>']

    for image_format in formats[1:]:
        variants = variant_sets[image_format]
        source_attributes = stringify_attributes({
            'type': variants[0].source_type,
            'srcset': ', '.join(v.srcset for v in variants),
            'sizes': sizes,
        })
        lines.append(f'<source {source_attributes}>')

    largest = variant_sets[formats[0]][-1]
    img_attributes = stringify_attributes({
        'src': largest.url,
        'width': largest.width,
        'height': largest.height,
        'alt': alt,
        'loading': 'lazy',
        'decoding': 'async',
    })
    lines.append(f'<img {img_attributes}>')
    lines.append('</picture>')
    return '\n'.join(lines)


class ImageShortcode(Shortcode):
    """
    The `image` template function. Generates variants of a source image under
    the output directory and returns `<picture>` markup referencing them.
    """
    def __init__(self,
                 output_subdir: str = 'assets/img',
                 url_path: str = '/assets/img/',
                 widths: Sequence[int] = DEFAULT_WIDTHS,
                 formats: Sequence[str] = DEFAULT_FORMATS,
                 sizes: str = DEFAULT_SIZES):
        """
        :param output_subdir: Where variants are written, relative to the
            output directory.
        :param url_path: The URL prefix matching @output_subdir.
        :param widths: Default target widths.
        :param formats: Default target formats. The first is the fallback.
        :param sizes: Default `sizes` attribute for `<source>` elements.
        """
        self.output_subdir = output_subdir
        self.url_path = url_path
        self.widths = tuple(widths)
        self.formats = tuple(formats)
        self.sizes = sizes
        self._processor: ImageProcessor | None = None

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('Pillow', check_name='PIL'),
        }

    @property
    def processor(self):
        """
        The ImageProcessor writing into the Context's current output
        directory. Rebuilt whenever that directory changes, as it does when a
        build is staged.
        """
        output_dir = self.context['output_dir'] / self.output_subdir
        if not self._processor or self._processor.output_dir != output_dir:
            self._processor = ImageProcessor(output_dir, self.url_path)
        return self._processor

    def resolve_source(self, src: str | Path):
        """
        Resolve @src against the input directory unless it is absolute.
        """
        path = Path(src)
        if not path.is_absolute():
            path = self.context['input_dir'] / path
        return path

    def __call__(self,
                 src: str | Path,
                 alt: str,
                 class_name: str | None = None,
                 widths: Sequence[int] | None = None,
                 formats: Sequence[str] | None = None,
                 sizes: str | None = None) -> Markup:
        widths = self.widths if widths is None else widths
        formats = self.formats if formats is None else formats
        if not widths:
            raise ValueError('At least one image width is required!')
        if not formats:
            raise ValueError('At least one image format is required!')

        variant_sets = self.processor.generate(self.resolve_source(src), widths, formats)
        return Markup(render_picture(
            variant_sets,
            alt,
            class_name,
            self.sizes if sizes is None else sizes
        ))
