import pytest
import yaml
from pydantic import ValidationError

from niche_sdm.config import DEFAULT_CONFIG_PATH, PipelineConfig, load_config
from niche_sdm.models.core.evaluation import ThresholdMethod


def test_default_file_matches_model_defaults():
    assert DEFAULT_CONFIG_PATH.exists()
    assert load_config() == PipelineConfig()


def test_partial_file_takes_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"n_background_points": 50, "threshold_method": "max_sss"}))
    config = load_config(path)

    assert config.n_background_points == 50
    assert config.threshold_method == ThresholdMethod.MAX_SSS
    assert config.buffer_degrees == 5.0
    assert config.candidate_variables == ["bio1", "bio5", "bio6", "bio12", "bio15"]


def test_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == PipelineConfig()


@pytest.mark.parametrize(
    "settings",
    [
        {"unknown_key": 1},
        {"candidate_variables": []},
        {"candidate_variables": ["bio1", "bio1"]},
        {"threshold_method": "kappa"},
        {"n_background_points": 0},
        {"buffer_degrees": -1.0},
        {"n_jobs": 0},
    ],
)
def test_invalid_settings(settings):
    with pytest.raises(ValidationError):
        PipelineConfig(**settings)
