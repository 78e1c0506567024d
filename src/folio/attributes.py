"""
HTML attribute serialization.
"""
from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from collections.abc import Mapping


def stringify_attributes(attributes: Mapping[str, t.Any]) -> str:
    """
    Render @attributes as `name="value"` pairs separated by single spaces, in
    mapping order. Entries whose value is None are left out entirely.

    Values are interpolated as-is and are NOT escaped; they must already be
    safe inside a double-quoted attribute.
    """
    return ' '.join(
        f'{name}="{value}"'
        for name, value in attributes.items()
        if value is not None
    )
