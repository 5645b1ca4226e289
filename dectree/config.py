"""
Configuration for pixel decision trees.

The module-level constants are the defaults of the reference digit domain
(28x28 grayscale images, ten classes). ``TreeConfig`` bundles them into a
validated model that can also be read from a YAML or JSON file.
"""

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


# Image side length, not stored in dataset files
WIDTH = 28
NUM_PIXELS = WIDTH * WIDTH

# A subset becomes a leaf once its majority label makes up this fraction
THRESHOLD_RATIO = 0.95

# Intensities below this value go to the left group when partitioning
SPLIT_VALUE = 128

NUM_CLASSES = 10


class TreeConfig(BaseModel):
    """Settings shared by dataset loading and tree induction."""

    threshold_ratio: float = Field(
        THRESHOLD_RATIO,
        description="Majority-label ratio at which recursion stops",
        gt=0,
        le=1,
    )
    width: int = Field(WIDTH, description="Side length of the square images", ge=1)
    split_value: int = Field(
        SPLIT_VALUE,
        description="Intensities below this value are partitioned to the left",
        ge=1,
        le=255,
    )
    num_classes: int = Field(
        NUM_CLASSES, description="Number of distinct labels", ge=1, le=256
    )

    @property
    def num_pixels(self) -> int:
        return self.width * self.width

    @classmethod
    def from_file(cls, path) -> "TreeConfig":
        """Load a configuration from a YAML (.yaml/.yml) or JSON file."""
        config_path = Path(path)
        suffix = config_path.suffix.lower()
        if suffix in [".yaml", ".yml"]:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f)
        elif suffix == ".json":
            with open(config_path, "r") as f:
                config_data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        return cls.model_validate(config_data or {})
