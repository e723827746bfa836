import logging
import sys

# GDAL bindings log every driver lookup at INFO
NOISY_LOGGERS = ("rasterio", "pyogrio", "fiona")


def setup_logging(level=logging.INFO, verbose: bool = False):
    """
    Send pipeline logs to stdout and route NonConvergence/OutOfBoundsPoint warnings
    through the `py.warnings` logger so they appear alongside the run log.
    """
    log_level = logging.DEBUG if verbose else level
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("niche_sdm").setLevel(log_level)
    logging.captureWarnings(True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
