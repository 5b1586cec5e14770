"""Registry models maintained separately from the dialogue graphs.

Three kinds of registry data describe content that lives in the graphs:

- Pattern affinities: how each character reacts to each pattern, and which
  nodes high pattern levels reveal.
- Simulation content registry: authoring metadata (phase, difficulty).
- Simulation engine registry: wiring metadata (entry node, completion flag).

The two simulation registries describe the same simulations and must stay
aligned; see wayfinder.validation.registry_alignment.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from wayfinder.models.dialogue import SimulationDifficulty
from wayfinder.models.state import Pattern


class AffinityLevel(StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    NEUTRAL = "neutral"
    FRICTION = "friction"


class PatternUnlock(BaseModel):
    """A node revealed once a pattern's orb fill reaches a threshold.

    threshold and description are not constrained here; out-of-range or
    empty values are reported by the pattern unlock validator.
    """

    pattern: Pattern
    threshold: int
    unlocked_node_id: str = Field(min_length=1)
    description: str = ""


class PatternAffinity(BaseModel):
    character_id: str = Field(min_length=1)
    primary: Pattern
    secondary: Pattern
    neutral: list[Pattern] = Field(default_factory=list)
    friction: Pattern
    resonance_descriptions: dict[Pattern, str] = Field(default_factory=dict)
    pattern_unlocks: list[PatternUnlock] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Simulation registries
# ---------------------------------------------------------------------------


class SimulationContentEntry(BaseModel):
    """Authoring-side simulation metadata.

    phase and difficulty are optional so that incomplete entries still load
    and show up as alignment issues.
    """

    id: str = Field(min_length=1)
    character_id: str = Field(min_length=1)
    title: str = ""
    type: str = ""
    icon: str = ""
    description: str = ""
    phase: int | None = Field(default=None, ge=1, le=3)
    difficulty: SimulationDifficulty | None = None


class CompletionFlag(BaseModel):
    type: Literal["global", "knowledge", "tag"] = "global"
    flag: str = Field(min_length=1)


class SimulationEngineEntry(BaseModel):
    """Engine-side simulation wiring metadata."""

    id: str = Field(min_length=1)
    character_id: str = Field(min_length=1)
    title: str = ""
    subtitle: str = ""
    description: str = ""
    theme: str = ""
    ai_tool: str | None = None
    completion_flag: CompletionFlag | None = None
    entry_node_id: str = Field(min_length=1)
    icon: str = ""
