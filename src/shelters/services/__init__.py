"""Service package exports."""

from .config import ShelterConfig, default_config, load_shelter_config

__all__ = ["ShelterConfig", "default_config", "load_shelter_config"]
