"""
Static map rendering module.

Draws a SpatialDataset with matplotlib through GeoPandas' plotting, with an
optional contextily basemap, and hands back the figure for saving or display.

Classes:
    RenderedImage: Figure and axes of a rendered map

Functions:
    render_static: Render a dataset to a static map image
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import contextily as cx
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from pyproj import Transformer

from core.dataset import SpatialDataset
from core.styling import StyleConfig, is_categorical, palette_colors, validate_style
from geometry_input.projection import WEB_MERCATOR, reproject
from utils.basemap_helpers import get_contextily_source
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderedImage:
    """A rendered static map."""
    figure: Figure
    axes: Axes

    def save(self, path: Union[str, Path], dpi: int = 300) -> Path:
        """Write the map to an image file; the format follows the file extension."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.figure.savefig(path, dpi=dpi, bbox_inches='tight')
        logger.info(f"  - Saved static map: {path}")
        return path

    def close(self) -> None:
        plt.close(self.figure)


def render_static(dataset: SpatialDataset,
                  style: StyleConfig,
                  figsize: Tuple[float, float] = (10, 10)) -> RenderedImage:
    """
    Render a dataset to a static map.

    With a basemap the dataset is drawn in Web Mercator so the tiles line up;
    view_bounds are given in the dataset's own CRS and transformed alongside.

    Parameters:
    -----------
    dataset : SpatialDataset
        Dataset to draw
    style : StyleConfig
        Styling parameters
    figsize : Tuple[float, float]
        Figure size in inches

    Returns:
    --------
    RenderedImage
        Figure and axes holding the map

    Raises:
    -------
    StyleAttributeNotFoundError
        If style.fill_attribute is not a dataset column
    CRSUnsetError
        If a basemap is requested for a dataset without CRS
    ValueError
        If the basemap provider is unknown
    """
    validate_style(dataset, style)

    logger.info(f"Rendering static map of '{dataset.name}' ({len(dataset)} features)")

    view_bounds = style.view_bounds
    if style.basemap_provider:
        source = get_contextily_source(style.basemap_provider)
        source_crs = dataset.require_crs('render_static with a basemap')
        plotted = reproject(dataset, WEB_MERCATOR)
        if view_bounds is not None:
            transformer = Transformer.from_crs(source_crs, plotted.crs, always_xy=True)
            view_bounds = transformer.transform_bounds(*view_bounds)
    else:
        source = None
        plotted = dataset

    frame = plotted.frame
    fig, ax = plt.subplots(figsize=figsize)

    plot_kwargs = {
        'ax': ax,
        'alpha': style.opacity,
        'edgecolor': style.stroke_color,
        'linewidth': style.stroke_width,
    }

    if len(frame) > 0:
        if style.fill_attribute:
            categorical = is_categorical(frame[style.fill_attribute], style)
            frame.plot(
                column=style.fill_attribute,
                cmap=style.color_palette,
                categorical=categorical,
                legend=style.legend,
                missing_kwds={'color': 'lightgrey', 'label': 'No data'},
                **plot_kwargs
            )
        else:
            frame.plot(color=palette_colors(style.color_palette, 1)[0], **plot_kwargs)
    else:
        logger.warning(f"  - Dataset '{dataset.name}' is empty, rendering an empty map")

    if view_bounds is not None:
        minx, miny, maxx, maxy = view_bounds
        ax.set_xlim(minx, maxx)
        ax.set_ylim(miny, maxy)

    if source is not None:
        cx.add_basemap(ax, crs=frame.crs, source=source)

    if style.title:
        ax.set_title(style.title)
    ax.set_axis_off()

    return RenderedImage(figure=fig, axes=ax)
