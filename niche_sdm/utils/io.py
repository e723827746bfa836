import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence, Union

import pandas as pd
import xarray as xr
import rioxarray as rxr  # Required for .rio accessor, even if not directly called

from niche_sdm.models.core.selection import CandidateModel, candidate_table

logger = logging.getLogger(__name__)


def write_surface(surface: xr.DataArray, path: Union[str, Path]) -> Path:
    """Write a (y, x) surface to a single-band GeoTIFF."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    surface.astype("float32").rio.to_raster(path)
    logger.info(f"Saved {surface.name or 'surface'} to {path}")
    return path


def read_surface(path: Union[str, Path]) -> xr.DataArray:
    """Read a single-band raster written by `write_surface`, nodata as NaN."""
    surface = rxr.open_rasterio(path, masked=True)
    if not isinstance(surface, xr.DataArray):
        raise ValueError(f"Expected DataArray from {path}, got {type(surface)}")
    if surface.sizes.get("band", 1) != 1:
        raise ValueError(f"Expected a single band in {path}, got {surface.sizes['band']}")
    surface = surface.squeeze("band", drop=True).astype(float)
    surface.attrs["resolution"] = float(abs(surface.rio.resolution()[0]))
    return surface


def write_candidate_table(
    candidates: Sequence[CandidateModel], path: Union[str, Path]
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    candidate_table(candidates).to_csv(path, index=False)
    return path


def write_summary(summary: Dict[str, Any], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(summary, f, indent=2, default=str)
    logger.info(f"Saved summary to {path}")
    return path


def write_comparison(result, output_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Save every output of a predator/prey comparison under `output_dir`.

    Writes current and future probability surfaces and binary presence maps for
    both species, the combined surfaces, one candidate table per species and a
    `summary.json`.

    Args:
        result: ComparisonResult from `compare_species`.
        output_dir: Folder to write to. Created if missing.

    Returns:
        Mapping of output name to written path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    outputs: Dict[str, Path] = {}
    for role, run, future, future_binary in (
        ("predator", result.predator, result.predator_future, result.predator_future_binary),
        ("prey", result.prey, result.prey_future, result.prey_future_binary),
    ):
        outputs[f"{role}_current"] = write_surface(run.surface, output_dir / f"{role}_current.tif")
        outputs[f"{role}_future"] = write_surface(future, output_dir / f"{role}_future.tif")
        outputs[f"{role}_binary"] = write_surface(
            run.binary_surface, output_dir / f"{role}_binary.tif"
        )
        outputs[f"{role}_future_binary"] = write_surface(
            future_binary, output_dir / f"{role}_future_binary.tif"
        )
        outputs[f"{role}_candidates"] = write_candidate_table(
            run.candidates, output_dir / f"{role}_candidates.csv"
        )

    outputs["combined_current"] = write_surface(
        result.combined_current, output_dir / "combined_current.tif"
    )
    outputs["combined_future"] = write_surface(
        result.combined_future, output_dir / "combined_future.tif"
    )
    outputs["summary"] = write_summary(result.summary(), output_dir / "summary.json")
    return outputs


def overlap_table(scores: Dict[str, Dict[str, float]]) -> pd.DataFrame:
    """Tabulate overlap scores keyed by climate, e.g. {"current": {...}, "future": {...}}."""
    return pd.DataFrame.from_dict(scores, orient="index")
