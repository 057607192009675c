"""
Layout loader for vessel-replay.

Loads layout YAML files from vessel_replay/layouts/ and provides
structured access via Pydantic models. Each layout defines:
- format_name: unique identifier (e.g., "sectioned_minmax")
- kind: which extractor handles it (rows | sectioned | markup)
- collector_type: the ``CollectorType`` stamped on every envelope
- interval: default pacing delay in seconds between replay cycles
- detection: rules for identifying if a dataset file matches this layout
- settings: kind-specific parsing constants (labels, offsets, strides)

Why YAML instead of hardcoded:
- Instrument exports drift (a new firmware adds a header row, moves the
  first value column); the constants can be edited without code changes.
- Separation of structure knowledge (YAML) from parsing logic (Python).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Directory containing layout YAML files (sibling package)
_LAYOUTS_DIR = Path(__file__).parent / "layouts"

# Detection priority: markup -> sectioned -> rows (rows is the CSV fallback)
_KIND_PRIORITY = {"markup": 0, "sectioned": 1, "rows": 2}


class DetectionConfig(BaseModel):
    """Detection rules for a layout."""
    suffixes: list[str] = Field(default_factory=list)
    # First-field labels that must all appear within the first scan_rows lines
    marker_labels: list[str] = Field(default_factory=list)
    scan_rows: int = 50


class RowSettings(BaseModel):
    """Parsing constants for tag-mapped row datasets."""
    delimiter: str = ","
    skip_blank_lines: bool = True


class SectionedSettings(BaseModel):
    """Parsing constants for sectioned min/max datasets."""
    delimiter: str = ","
    tag_label: str = "Tag"
    unit_label: str = "Unit"
    marker_label: str = "Date"
    device_type_label: str = "Device Type"
    serial_label: str = "Serial No."
    first_value_column: int = 3
    unit_substitutions: dict[str, str] = Field(default_factory=dict)


class MarkupSettings(BaseModel):
    """Cell offsets for fixed-stride markup datasets."""
    start_index: int = 9
    stride: int = 7
    name_offset: int = 0
    alarm_offsets: list[int] = Field(default_factory=lambda: [1, 2, 3, 4])
    value_offset: int = 5
    unit_offset: int = 6
    placeholder: str = "\xa0"


class Layout(BaseModel):
    """A complete layout definition loaded from YAML."""
    format_name: str
    kind: Literal["rows", "sectioned", "markup"]
    collector_type: str
    interval: float
    description: str = ""
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    settings: dict[str, Any] = Field(default_factory=dict)

    @property
    def priority(self) -> int:
        """Lower number = checked first during detection."""
        return _KIND_PRIORITY.get(self.kind, 99)

    def row_settings(self) -> RowSettings:
        return RowSettings.model_validate(self.settings)

    def sectioned_settings(self) -> SectionedSettings:
        return SectionedSettings.model_validate(self.settings)

    def markup_settings(self) -> MarkupSettings:
        return MarkupSettings.model_validate(self.settings)


def load_layout(path: Path) -> Layout:
    """Load a single layout YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return Layout.model_validate(raw)


def load_all_layouts(layouts_dir: Path | None = None) -> list[Layout]:
    """Load all layout YAML files, sorted by detection priority.

    Args:
        layouts_dir: Directory to scan for .yaml files. Defaults to
            the built-in layouts/ directory.

    Returns:
        List of Layout objects, markup first, then sectioned, then rows.
    """
    layouts_dir = layouts_dir or _LAYOUTS_DIR
    layouts: list[Layout] = []
    for yaml_path in sorted(layouts_dir.glob("*.yaml")):
        try:
            layout = load_layout(yaml_path)
            layouts.append(layout)
            logger.debug("Loaded layout: %s from %s", layout.format_name, yaml_path)
        except Exception as e:
            logger.warning("Failed to load layout from %s: %s", yaml_path, e)
    layouts.sort(key=lambda l: l.priority)
    logger.info("Loaded %d layouts", len(layouts))
    return layouts


def get_layout(
    kind: str | None = None,
    format_name: str | None = None,
    layouts: list[Layout] | None = None,
) -> Layout:
    """Look up a layout by ``format_name``, or the first one of *kind*.

    Raises:
        KeyError: If no layout matches.
    """
    if layouts is None:
        layouts = load_all_layouts()
    for layout in layouts:
        if format_name is not None:
            if layout.format_name == format_name:
                return layout
        elif layout.kind == kind:
            return layout
    raise KeyError(f"No layout found (kind={kind!r}, format_name={format_name!r})")
