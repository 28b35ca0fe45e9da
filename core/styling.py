"""
Map styling module.

Holds the style configuration shared by the static and interactive renderers
and turns attribute values into colours.

Classes:
    StyleConfig: Enumerated styling parameters for one rendered dataset

Functions:
    validate_style: Check a style against the dataset it will render
    build_color_lookup: Map attribute values to hex colours
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import matplotlib
from matplotlib.colors import Normalize, to_hex
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from core.dataset import SpatialDataset
from core.errors import StyleAttributeNotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)

MISSING_COLOR = '#cccccc'
# Number of sample values shown in a continuous legend
LEGEND_STEPS = 5


@dataclass(frozen=True)
class StyleConfig:
    """
    Styling parameters for rendering a dataset.

    Attributes:
        fill_attribute: Column driving the fill colour, or None for a single colour
        color_palette: Matplotlib colormap name
        opacity: Fill opacity between 0 and 1
        stroke_color: Outline colour
        stroke_width: Outline width in points (static) or pixels (interactive)
        basemap_provider: Basemap name ('CartoDB.Positron', 'OpenStreetMap.Mapnik', ...)
                          or None for no basemap
        view_bounds: (minx, miny, maxx, maxy) in the dataset's CRS, or None for full extent
        categorical: Force categorical (True) or continuous (False) colouring;
                     None decides from the column dtype
        legend: Draw a legend when fill_attribute is set
        title: Optional map title
    """
    fill_attribute: Optional[str] = None
    color_palette: str = 'viridis'
    opacity: float = 0.7
    stroke_color: str = '#333333'
    stroke_width: float = 1.0
    basemap_provider: Optional[str] = 'CartoDB.Positron'
    view_bounds: Optional[Tuple[float, float, float, float]] = None
    categorical: Optional[bool] = None
    legend: bool = True
    title: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.opacity <= 1.0:
            raise ValueError(f"Opacity must be between 0 and 1, got {self.opacity}")
        if self.stroke_width < 0:
            raise ValueError(f"Stroke width must be non-negative, got {self.stroke_width}")
        if self.color_palette not in matplotlib.colormaps:
            raise ValueError(f"Unknown color palette '{self.color_palette}'")
        if self.view_bounds is not None:
            bounds = tuple(float(v) for v in self.view_bounds)
            if len(bounds) != 4 or bounds[0] >= bounds[2] or bounds[1] >= bounds[3]:
                raise ValueError(f"view_bounds must be (minx, miny, maxx, maxy), got {self.view_bounds}")
            object.__setattr__(self, 'view_bounds', bounds)

    @classmethod
    def from_dict(cls, settings: Mapping[str, Any]) -> 'StyleConfig':
        """Build a StyleConfig from a configuration dictionary, ignoring unrelated keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in settings.items() if k in known})


def validate_style(dataset: SpatialDataset, style: StyleConfig) -> None:
    """
    Check that a style can be applied to a dataset.

    Raises:
        StyleAttributeNotFoundError: If fill_attribute is not a dataset column
    """
    if style.fill_attribute is not None and style.fill_attribute not in dataset.columns:
        raise StyleAttributeNotFoundError(
            [style.fill_attribute], dataset.columns, dataset_name=dataset.name
        )


def is_categorical(series: pd.Series, style: StyleConfig) -> bool:
    """Decide whether values are coloured as categories or along a continuous ramp."""
    if style.categorical is not None:
        return style.categorical
    if is_bool_dtype(series) or not is_numeric_dtype(series):
        return True
    return False


def palette_colors(palette: str, count: int) -> List[str]:
    """Sample count evenly spaced hex colours from a matplotlib colormap."""
    cmap = matplotlib.colormaps[palette]
    if count <= 0:
        return []
    if count == 1:
        return [to_hex(cmap(0.5))]
    return [to_hex(cmap(i / (count - 1))) for i in range(count)]


def build_color_lookup(dataset: SpatialDataset,
                       style: StyleConfig) -> Tuple[Callable[[Any], str], Dict[str, str]]:
    """
    Build a value -> colour function and the legend entries that go with it.

    Categorical columns get one palette colour per distinct value (sorted);
    numeric columns are normalized between their min and max. Missing
    values are drawn grey.

    Returns:
        Tuple of (colour function, legend mapping of label -> hex colour)
    """
    validate_style(dataset, style)

    if style.fill_attribute is None:
        color = palette_colors(style.color_palette, 1)[0]
        return (lambda value: color), {dataset.name: color}

    series = dataset.frame[style.fill_attribute]
    present = series.dropna()

    if present.empty:
        return (lambda value: MISSING_COLOR), {'No data': MISSING_COLOR}

    if is_categorical(series, style):
        categories = sorted(present.unique().tolist(), key=str)
        colors = palette_colors(style.color_palette, len(categories))
        by_label = {str(cat): col for cat, col in zip(categories, colors)}

        def categorical_color(value: Any) -> str:
            if value is None or (isinstance(value, float) and value != value):
                return MISSING_COLOR
            return by_label.get(str(value), MISSING_COLOR)

        legend = dict(by_label)
        logger.debug(f"Categorical colours for {style.fill_attribute}: {len(categories)} categories")
        return categorical_color, legend

    vmin, vmax = float(present.min()), float(present.max())
    norm = Normalize(vmin=vmin, vmax=vmax if vmax > vmin else vmin + 1)
    cmap = matplotlib.colormaps[style.color_palette]

    def numeric_color(value: Any) -> str:
        if value is None or (isinstance(value, float) and value != value):
            return MISSING_COLOR
        return to_hex(cmap(norm(float(value))))

    legend = {}
    for i in range(LEGEND_STEPS):
        value = vmin + (vmax - vmin) * i / (LEGEND_STEPS - 1)
        legend[f"{value:,.2f}"] = numeric_color(value)

    return numeric_color, legend
