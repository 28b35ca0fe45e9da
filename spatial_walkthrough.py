#!/usr/bin/env python
"""
Spatial Walkthrough
===================
Runs the vector analysis walkthrough end to end: load a point layer and a
polygon layer, normalize their schemas and CRSs, count the points falling in
each polygon, and render the result as a static and an interactive map.

Usage:
    python spatial_walkthrough.py [config.json] [output_name]

The default config reads settings.data_dir (data/ in the project root), which
holds one file per layer named after it:

    data/
        dams.geojson       points, NAME and HEIGHT_FT
        counties.geojson   polygons, NAME and GEOID

The bundled files are small California samples in EPSG:4326. Point data_dir at
another directory or a GeoPackage holding layers with the same names and
columns to run on real data.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

# Import logging first
from utils.logger import setup_logging, get_logger, log_section

from config.config_loader import load_config, load_pipeline_settings, load_style_settings
from core.aggregation import count_within
from core.map_builder import render_interactive
from core.output_generator import generate_output
from core.static_renderer import render_static
from core.styling import StyleConfig
from geometry_input.pipeline import prepare_from_config


def main(config_path: Optional[str] = None, output_name: Optional[str] = None) -> Optional[Path]:
    """
    Main execution workflow.

    Workflow Steps:
    1. Setup logging to console and file
    2. Load configuration
    3. Prepare the point and polygon layers
    4. Count points within each polygon group
    5. Render static and interactive maps
    6. Write output files

    Parameters:
    -----------
    config_path : Optional[str]
        Configuration file (defaults to config/pipeline_config.json)
    output_name : Optional[str]
        Output directory name (defaults to a timestamped name)

    Returns:
    --------
    Optional[Path]
        Path to output directory if successful, None if failed
    """
    workflow_start_time = time.time()

    log_file = setup_logging()
    logger = get_logger(__name__)

    log_section(logger, "SPATIAL WALKTHROUGH - Vector Analysis Pipeline")
    logger.info(f"Log file: {log_file}")
    logger.info("")

    try:
        config = load_config(config_path)
        settings = load_pipeline_settings(config)
        analysis = config.get('analysis', {})
        logger.info(f"Configuration loaded: {len(config['layers'])} layers defined")

        # Step 1: Prepare layers
        points = prepare_from_config(config, analysis.get('points', 'dams'))
        polygons = prepare_from_config(config, analysis.get('polygons', 'counties'))

        # Step 2: Aggregate
        group_column = analysis.get('group_column', 'county')
        count_column = analysis.get('count_column', 'count')
        counted = count_within(points, polygons, group_column, count_column=count_column)

        # Step 3: Render
        style = StyleConfig.from_dict(load_style_settings(config))
        rendered = render_static(counted, style) if settings['render_static'] else None
        web_map = (
            render_interactive(counted, style, zoom_start=settings['default_zoom'])
            if settings['render_interactive'] else None
        )

        # Step 4: Write outputs
        if output_name is None:
            output_name = f"walkthrough_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        total_execution_time = time.time() - workflow_start_time
        output_path = generate_output(
            settings['output_dir'] / output_name,
            {points.name: points, counted.name: counted},
            rendered=rendered,
            web_map=web_map,
            metadata={
                'config': str(config_path or 'default'),
                'target_crs': settings['target_crs'],
                'group_column': group_column,
                'execution_seconds': round(total_execution_time, 2)
            }
        )
        if rendered is not None:
            rendered.close()

        logger.info("")
        logger.info("✓ WORKFLOW COMPLETE")
        logger.info(f"✓ Total execution time: {time.time() - workflow_start_time:.2f} seconds")
        logger.info(f"✓ Output directory: {output_path}")
        logger.info("")

        return output_path

    except Exception as e:
        elapsed_time = time.time() - workflow_start_time

        logger.error("")
        log_section(logger, "✗ WORKFLOW FAILED", level=logging.ERROR)
        logger.error(f"Error: {str(e)}", exc_info=True)
        logger.error(f"Workflow failed after {elapsed_time:.2f} seconds")
        logger.error(f"See log file for details: {log_file}")
        logger.error("=" * 80)
        return None


if __name__ == "__main__":
    config_arg = sys.argv[1] if len(sys.argv) > 1 else None
    output_arg = sys.argv[2] if len(sys.argv) > 2 else None

    output_dir = main(config_arg, output_arg)

    if output_dir:
        print(f"\n✓ Success! Open {output_dir / 'index.html'} in your browser.")
    else:
        print("\n✗ Walkthrough failed. Check log file for details.")
        sys.exit(1)
