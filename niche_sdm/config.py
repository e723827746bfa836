from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from niche_sdm.models.core.evaluation import ThresholdMethod

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


class PipelineConfig(BaseModel):
    """Settings shared by both species runs."""

    model_config = ConfigDict(extra="forbid")

    buffer_degrees: float = Field(5.0, ge=0)
    n_background_points: int = Field(500, ge=1)
    seed: Optional[int] = 42
    candidate_variables: List[str] = ["bio1", "bio5", "bio6", "bio12", "bio15"]
    max_candidate_variables: int = Field(12, ge=1)
    max_iterations: int = Field(25, ge=1)
    tolerance: float = Field(1e-8, gt=0)
    threshold_method: ThresholdMethod = ThresholdMethod.PREVALENCE
    threshold_step: float = Field(1e-4, gt=0, lt=1)
    n_jobs: int = 1
    window_size: int = Field(256, ge=1)
    land_resolution: Optional[float] = Field(None, gt=0)

    @field_validator("candidate_variables")
    @classmethod
    def _unique_candidates(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("candidate_variables must not be empty")
        if len(set(value)) != len(value):
            raise ValueError(f"candidate_variables has duplicates: {value}")
        return value

    @field_validator("n_jobs")
    @classmethod
    def _nonzero_jobs(cls, value: int) -> int:
        # joblib counts negative values back from the number of CPUs
        if value == 0:
            raise ValueError("n_jobs must be a positive worker count or negative, not 0")
        return value


def load_config(config_path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """Loads the YAML configuration file. Missing keys take their defaults."""
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return PipelineConfig()
        config_path = DEFAULT_CONFIG_PATH
    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}
    return PipelineConfig(**config)
