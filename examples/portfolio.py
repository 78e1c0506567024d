from pathlib import Path

from folio import InputBuildSettings
from folio.site import build_rules, build_shortcodes, build_transforms


# Optional, and can be overridden with CLI arguments.
SETTINGS = InputBuildSettings(
    input_dir=Path(__file__).parent / 'portfolio',
    output_dir=Path('output/portfolio'),
)
RULES = build_rules()
SHORTCODES = build_shortcodes()
TRANSFORMS = build_transforms()
