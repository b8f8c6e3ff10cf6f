"""
Configuration Module for automaton-core
Simulation profile loaded from profile.json, with a process-wide default.
"""

import json
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, model_validator

log = structlog.get_logger()

DEFAULT_PROFILE_PATH = Path(__file__).parent / "profile.json"


class Profile(BaseModel):
    """
    Options that change how machines are run.
    At least one acceptance mode must be enabled.
    """
    accept_by_final_state: bool = Field(
        default=True, description="Accept when the outermost machine is in a final state"
    )
    accept_by_halting: bool = Field(
        default=False, description="Accept when a configuration halts"
    )
    max_rounds: int = Field(
        default=500, gt=0, description="Simulation rounds before giving up"
    )

    @model_validator(mode="after")
    def validate_acceptance(self):
        if not (self.accept_by_final_state or self.accept_by_halting):
            raise ValueError("At least one acceptance mode must be enabled")
        return self


def load_profile(path: Union[str, Path]) -> Profile:
    """Read a profile from a JSON file. Missing keys take their defaults."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    profile = Profile(**data)
    log.info("profile_loaded", path=str(path), **profile.model_dump())
    return profile


# Global profile instance
_profile: Optional[Profile] = None


def get_profile() -> Profile:
    """Get or create the global profile."""
    global _profile
    if _profile is None:
        if DEFAULT_PROFILE_PATH.exists():
            _profile = load_profile(DEFAULT_PROFILE_PATH)
        else:
            log.warning("profile_config_not_found", path=str(DEFAULT_PROFILE_PATH))
            _profile = Profile()
    return _profile


def set_profile(profile: Optional[Profile]) -> None:
    """Replace the global profile. None makes the next get_profile() reload it."""
    global _profile
    _profile = profile
