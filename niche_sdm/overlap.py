"""Niche overlap between two probability surfaces."""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import xarray as xr

from niche_sdm.raster.grid import check_same_spatial_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlapScore:
    schoeners_d: float
    warrens_i: float

    def to_dict(self) -> dict:
        return {"schoeners_d": self.schoeners_d, "warrens_i": self.warrens_i}


def combine(surface_a: xr.DataArray, surface_b: xr.DataArray) -> xr.DataArray:
    """Cell-wise product of two surfaces on the same grid."""
    check_same_spatial_index(surface_a, surface_b)
    combined = surface_a.transpose("y", "x") * surface_b.transpose("y", "x")
    combined.name = "combined_probability"
    return combined


def _normalised_pair(
    surface_a: xr.DataArray, surface_b: xr.DataArray
) -> Tuple[np.ndarray, np.ndarray]:
    """Both surfaces over the cells where both have data, each rescaled to sum to 1."""
    check_same_spatial_index(surface_a, surface_b)
    a = np.asarray(surface_a.transpose("y", "x").values, dtype=float).ravel()
    b = np.asarray(surface_b.transpose("y", "x").values, dtype=float).ravel()
    comparable = np.isfinite(a) & np.isfinite(b)
    a, b = a[comparable], b[comparable]
    if (a < 0).any() or (b < 0).any():
        raise ValueError("Overlap metrics need non-negative surfaces")

    total_a, total_b = a.sum(), b.sum()
    if total_a <= 0 or total_b <= 0:
        raise ValueError(
            "Each surface needs a positive total over the comparable cells "
            f"(got {total_a} and {total_b} over {comparable.sum()} cells)"
        )
    return a / total_a, b / total_b


def schoeners_d(surface_a: xr.DataArray, surface_b: xr.DataArray) -> float:
    """D = 1 - 0.5 * sum(|p - q|) over the comparable cells."""
    p, q = _normalised_pair(surface_a, surface_b)
    d = 1.0 - 0.5 * np.abs(p - q).sum()
    return float(np.clip(d, 0.0, 1.0))


def warrens_i(surface_a: xr.DataArray, surface_b: xr.DataArray) -> float:
    """I = 1 - 0.5 * sum((sqrt(p) - sqrt(q))^2) over the comparable cells."""
    p, q = _normalised_pair(surface_a, surface_b)
    i = 1.0 - 0.5 * ((np.sqrt(p) - np.sqrt(q)) ** 2).sum()
    return float(np.clip(i, 0.0, 1.0))


def niche_overlap(surface_a: xr.DataArray, surface_b: xr.DataArray) -> OverlapScore:
    score = OverlapScore(
        schoeners_d=schoeners_d(surface_a, surface_b),
        warrens_i=warrens_i(surface_a, surface_b),
    )
    logger.info(f"Niche overlap: D={score.schoeners_d:.4f}, I={score.warrens_i:.4f}")
    return score
