"""Per-model report layouts of Aquacomputer devices."""
from .profile_registry import (
    Capability,
    DeviceProfile,
    FanControlLayout,
    FanLayout,
    ProfileRegistry,
    build_profile,
    profile_for,
    supported_models,
    validate_profile,
)

__all__ = [
    "Capability",
    "DeviceProfile",
    "FanControlLayout",
    "FanLayout",
    "ProfileRegistry",
    "build_profile",
    "profile_for",
    "supported_models",
    "validate_profile",
]
