"""
Passthrough of static assets such as stylesheets, scripts, and original images.
"""
from __future__ import annotations

import shutil
from pathlib import Path

from .core import Step


class PassthroughStep(Step):
    """
    Copies a file byte-for-byte to each of its output paths. File metadata,
    including the modification time, is carried over.
    """
    def __call__(self, path: Path, output_paths: list[Path]):
        for target_path in output_paths:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target_path)
