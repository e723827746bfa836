# Command Line Interface for niche-overlap-sdm
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from typing_extensions import Annotated

from niche_sdm.config import load_config
from niche_sdm.data.loaders import VectorLandMaskProvider, load_climate_grid
from niche_sdm.errors import SDMError
from niche_sdm.geo import StudyExtent
from niche_sdm.occurrence import clean_occurrence_records
from niche_sdm.overlap import niche_overlap
from niche_sdm.pipeline import compare_species
from niche_sdm.utils.io import overlap_table, read_surface, write_comparison
from niche_sdm.utils.logging_utils import setup_logging

app = typer.Typer(
    name="niche-sdm",
    help="Predator/prey distribution models and niche overlap under current and future climate",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def _read_occurrences(path: Path, lon_col: str, lat_col: str, sep: str):
    records = pd.read_csv(path, sep=sep)
    logger.info(f"Loaded {len(records)} records from {path}")
    return clean_occurrence_records(records, lon_col=lon_col, lat_col=lat_col)


@app.command()
def run(
    predator_path: Annotated[
        Path,
        typer.Option(
            ...,
            "--predator",
            help="CSV of predator occurrence records.",
            exists=True, readable=True, resolve_path=True,
        ),
    ],
    prey_path: Annotated[
        Path,
        typer.Option(
            ...,
            "--prey",
            help="CSV of prey occurrence records.",
            exists=True, readable=True, resolve_path=True,
        ),
    ],
    current_climate_path: Annotated[
        Path,
        typer.Option(
            ...,
            "--current-climate",
            help="Multi-band GeoTIFF of current bioclimatic variables.",
            exists=True, readable=True, resolve_path=True,
        ),
    ],
    future_climate_path: Annotated[
        Path,
        typer.Option(
            ...,
            "--future-climate",
            help="Multi-band GeoTIFF of projected bioclimatic variables with the same bands.",
            exists=True, readable=True, resolve_path=True,
        ),
    ],
    output_dir: Annotated[
        Path,
        typer.Option(help="Folder for surfaces, candidate tables and the summary.", resolve_path=True),
    ] = Path("outputs/niche_sdm"),
    land_path: Annotated[
        Optional[Path],
        typer.Option(
            "--land",
            help="Land polygons (GeoJSON, GPKG...). Defaults to cells with climate data.",
            exists=True, readable=True, resolve_path=True,
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", help="YAML settings file.", exists=True, readable=True),
    ] = None,
    predator_name: Annotated[str, typer.Option(help="Label for the predator.")] = "predator",
    prey_name: Annotated[str, typer.Option(help="Label for the prey.")] = "prey",
    lon_col: Annotated[str, typer.Option(help="Longitude column in the CSVs.")] = "decimalLongitude",
    lat_col: Annotated[str, typer.Option(help="Latitude column in the CSVs.")] = "decimalLatitude",
    sep: Annotated[str, typer.Option(help="CSV field separator.")] = ",",
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
) -> None:
    """
    Model both species, project them onto the future climate and measure their overlap.
    """
    setup_logging(verbose=verbose)
    config = load_config(config_path)

    predator = _read_occurrences(predator_path, lon_col, lat_col, sep)
    prey = _read_occurrences(prey_path, lon_col, lat_col, sep)
    current_grid = load_climate_grid(current_climate_path)
    future_grid = load_climate_grid(future_climate_path)

    try:
        land_mask = None
        if land_path is not None:
            extent = StudyExtent.from_occurrences(predator, prey, buffer=config.buffer_degrees)
            resolution = config.land_resolution or current_grid.attrs["resolution"]
            land_mask = VectorLandMaskProvider(land_path).rasterize(extent, resolution)

        result = compare_species(
            predator_name,
            predator,
            prey_name,
            prey,
            current_grid,
            future_grid,
            land_mask=land_mask,
            config=config,
        )
    except SDMError as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    write_comparison(result, output_dir)
    table = overlap_table(
        {"current": result.current_overlap.to_dict(), "future": result.future_overlap.to_dict()}
    )
    typer.echo(table.to_string(float_format=lambda v: f"{v:.4f}"))


@app.command()
def overlap(
    surface_a: Annotated[
        Path,
        typer.Argument(help="First single-band probability GeoTIFF.", exists=True, readable=True),
    ],
    surface_b: Annotated[
        Path,
        typer.Argument(help="Second single-band probability GeoTIFF on the same grid.", exists=True, readable=True),
    ],
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
) -> None:
    """
    Schoener's D and Warren's I between two probability surfaces.
    """
    setup_logging(verbose=verbose)
    try:
        score = niche_overlap(read_surface(surface_a), read_surface(surface_b))
    except (SDMError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"schoeners_d\t{score.schoeners_d:.6f}")
    typer.echo(f"warrens_i\t{score.warrens_i:.6f}")


if __name__ == "__main__":
    app()
