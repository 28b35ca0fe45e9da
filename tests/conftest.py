"""
Shared pytest fixtures for the spatial pipeline tests.

Provides small in-memory datasets and on-disk layer directories so tests do
not depend on downloaded data.
"""

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from core.dataset import SpatialDataset


# =============================================================================
# Animal sightings (geographic coordinates)
# =============================================================================

ANIMAL_POINTS = {
    "tiger": (-119.40, 34.35),
    "lion": (-119.41, 34.39),
    "bear": (-119.43, 34.38),
}


@pytest.fixture
def animals_frame():
    """Three animal sightings with no CRS declared."""
    return gpd.GeoDataFrame(
        {"name": list(ANIMAL_POINTS)},
        geometry=[Point(xy) for xy in ANIMAL_POINTS.values()],
        crs=None,
    )


@pytest.fixture
def animals_unset(animals_frame):
    """Animal sightings dataset with an unset CRS."""
    return SpatialDataset(animals_frame, name="animals")


@pytest.fixture
def animals(animals_frame):
    """Animal sightings tagged EPSG:4326."""
    return SpatialDataset(animals_frame.set_crs("EPSG:4326"), name="animals")


@pytest.fixture
def habitat():
    """One circular habitat around (-119.42, 34.37) covering only lion and bear."""
    return SpatialDataset(
        gpd.GeoDataFrame(
            {"habitat": ["chaparral"]},
            geometry=[Point(-119.42, 34.37).buffer(0.025)],
            crs="EPSG:4326",
        ),
        name="habitat",
    )


# =============================================================================
# Counties and dams (projected coordinates, EPSG:3310 metres)
# =============================================================================

@pytest.fixture
def counties():
    """Three adjacent 10 x 10 square counties."""
    return SpatialDataset(
        gpd.GeoDataFrame(
            {
                "county": ["Alpha", "Bravo", "Charlie"],
                "geoid": ["06001", "06003", "06005"],
            },
            geometry=[box(0, 0, 10, 10), box(10, 0, 20, 10), box(20, 0, 30, 10)],
            crs="EPSG:3310",
        ),
        name="counties",
    )


@pytest.fixture
def dams():
    """Five dams: three in Alpha, two in Bravo, none in Charlie."""
    return SpatialDataset(
        gpd.GeoDataFrame(
            {
                "name": ["Oroville", "Shasta", "Folsom", "Pine Flat", "Isabella"],
                "height_ft": [770.0, 602.0, 340.0, 429.0, 185.0],
            },
            geometry=[
                Point(2, 2), Point(5, 5), Point(8, 3),
                Point(12, 7), Point(17, 4),
            ],
            crs="EPSG:3310",
        ),
        name="dams",
    )


# =============================================================================
# On-disk sources
# =============================================================================

@pytest.fixture
def layer_dir(tmp_path, counties, dams, animals_frame):
    """
    Directory source holding shapefile layers.

    - counties.shp (EPSG:3310, columns NAME/GEOID)
    - dams.shp (EPSG:3310, columns NAME/HEIGHT_FT)
    - animals.shp (no .prj)
    """
    source = tmp_path / "layers"
    source.mkdir()

    counties_frame = counties.to_frame().rename(columns={"county": "NAME", "geoid": "GEOID"})
    counties_frame.to_file(source / "counties.shp")

    dams_frame = dams.to_frame().rename(columns={"name": "NAME", "height_ft": "HEIGHT_FT"})
    dams_frame.to_file(source / "dams.shp")

    animals_frame.to_file(source / "animals.shp")

    return source
