"""
Output generation module for the Spatial Pipeline.

This module handles saving rendered maps and datasets to an output directory.

Functions:
    generate_output: Save maps, GeoJSON data files and metadata
"""

import folium
import json
from pathlib import Path
from datetime import datetime
from typing import Dict, Optional, Union

from core.dataset import SpatialDataset
from core.static_renderer import RenderedImage
from geometry_input.load_input import extract_geometry_metadata
from utils.logger import get_logger, log_section

logger = get_logger(__name__)


def _safe_name(name: str) -> str:
    return name.replace(' ', '_').replace('/', '_').lower()


def generate_output(
    output_dir: Union[str, Path],
    datasets: Dict[str, SpatialDataset],
    rendered: Optional[RenderedImage] = None,
    web_map: Optional[folium.Map] = None,
    metadata: Optional[Dict] = None
) -> Path:
    """
    Write a run's results to output_dir.

    Creates:
    - data/<name>.geojson: One file per dataset
    - map.png: Static map (when rendered is given)
    - index.html: Interactive map (when web_map is given)
    - metadata.json: Per-dataset CRS, bounds, counts plus caller metadata

    Parameters:
    -----------
    output_dir : Union[str, Path]
        Directory to write into (created if missing)
    datasets : Dict[str, SpatialDataset]
        Output name -> dataset
    rendered : Optional[RenderedImage]
        Static map
    web_map : Optional[folium.Map]
        Interactive map
    metadata : Optional[Dict]
        Extra JSON-serializable run information

    Returns:
    --------
    Path
        The output directory
    """
    log_section(logger, "Generating Output Files")

    output_path = Path(output_dir)
    data_path = output_path / 'data'
    data_path.mkdir(parents=True, exist_ok=True)

    logger.info(f"Output directory: {output_path}")

    dataset_summaries = {}
    for name, dataset in datasets.items():
        summary = extract_geometry_metadata(dataset)
        if dataset.is_empty:
            logger.info(f"  - Skipping {name} (0 features)")
        else:
            logger.info(f"  - Saving {name} features...")
            layer_file = data_path / f'{_safe_name(name)}.geojson'
            dataset.frame.to_file(layer_file, driver='GeoJSON')
            summary['file'] = str(layer_file.relative_to(output_path))
        dataset_summaries[name] = summary

    files = []
    if rendered is not None:
        rendered.save(output_path / 'map.png')
        files.append('map.png')

    if web_map is not None:
        logger.info("  - Saving interactive map...")
        web_map.save(str(output_path / 'index.html'))
        files.append('index.html')

    summary = {
        'generated_at': datetime.now().isoformat(),
        'datasets': dataset_summaries,
        'total_features': sum(s['feature_count'] for s in dataset_summaries.values()),
        'files': files
    }
    if metadata:
        summary['run'] = metadata

    logger.info("  - Saving metadata...")
    with open(output_path / 'metadata.json', 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2, default=str)

    logger.info("")
    logger.info("✓ Output Generation Complete")
    logger.info(f"Files saved to: {output_path}")
    logger.info("=" * 80)

    return output_path
