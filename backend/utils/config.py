import os
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_str(name, default=None):
    raw = os.environ.get(name)
    return raw if raw else default


@dataclass
class Settings:
    data_dir: str = "data"
    dataset: str = "routing.json"
    tolerance: float = 10.0      # max |cross product| for a point to count as on a piece
    slack: float = 1.0           # distance slack at piece endpoints
    dataset_crs: Optional[str] = None
    display_crs: Optional[str] = None
    layers: dict = field(default_factory=lambda: {
        "roads": "roads.geojson",
        "routing": "routing.json",
    })

    @property
    def dataset_path(self):
        if os.path.isabs(self.dataset):
            return self.dataset
        return os.path.join(self.data_dir, self.dataset)

    @classmethod
    def from_env(cls):
        return cls(
            data_dir=_env_str("ROUTING_DATA_DIR", "data"),
            dataset=_env_str("ROUTING_DATASET", "routing.json"),
            tolerance=_env_float("ROUTING_TOLERANCE", 10.0),
            slack=_env_float("ROUTING_SLACK", 1.0),
            dataset_crs=_env_str("ROUTING_DATASET_CRS"),
            display_crs=_env_str("ROUTING_DISPLAY_CRS"),
        )
