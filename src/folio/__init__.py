"""
folio is a small static site generator for portfolio and blog sites, with
responsive image generation and HTML minification built in.
"""
from .assets import PassthroughStep
from .attributes import stringify_attributes
from .core import (
    BuildError, BuildSettings, Context, InputBuildSettings, Matcher, PathCalc, Rule, Shortcode,
    Step, StepUnavailableException, Transform,
)
from .dependencies import Dependency, PipDependency
from .images import ImageProcessor, ImageShortcode, ImageSourceNotFound, ImageVariant, render_picture
from .minify import HTMLMinifyTransform
from .pages import PageStep
from .paths import DirPathCalc, OutputDirPathCalc, REMatcher, WebIndexPathCalc
