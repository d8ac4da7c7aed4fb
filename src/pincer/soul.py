"""
Agent persona ("soul") for pincer.

The soul describes who the agent is: identity, values, tone, boundaries and
expertise. It is loaded from YAML, falls back to built-in defaults when no
file exists, and renders into system prompt text.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from pincer.memory.store import ImmutableKeyError, MemoryStore

logger = logging.getLogger(__name__)

SECTIONS = ("identity", "values", "tone", "boundaries", "expertise")


class SoulError(Exception):
    """The soul file could not be read or parsed."""

    pass


class Identity(BaseModel):
    name: str = "Pincer"
    role: str = "AI assistant"
    personality: list[str] = Field(default_factory=lambda: ["helpful", "precise", "thoughtful"])


class Values(BaseModel):
    core: list[str] = Field(default_factory=lambda: ["honesty", "helpfulness", "safety"])
    priorities: str = "accuracy over speed, clarity over brevity"


class Tone(BaseModel):
    style: str = "conversational but professional"
    verbosity: str = "concise"


class Boundaries(BaseModel):
    refuse: list[str] = Field(
        default_factory=lambda: ["generating malware", "impersonating real people"]
    )
    disclaimer_topics: list[str] = Field(default_factory=lambda: ["medical", "legal", "financial"])


class Expertise(BaseModel):
    domains: list[str] = Field(default_factory=lambda: ["general knowledge"])


class MemorySeed(BaseModel):
    key: str
    value: str


class Soul(BaseModel):
    """The agent persona."""

    identity: Identity = Field(default_factory=Identity)
    values: Values = Field(default_factory=Values)
    tone: Tone = Field(default_factory=Tone)
    boundaries: Boundaries = Field(default_factory=Boundaries)
    expertise: Expertise = Field(default_factory=Expertise)
    memory_seeds: list[MemorySeed] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> "Soul":
        """
        Load a soul from a YAML file.

        Sections missing from the file keep their defaults; a missing file
        yields the default soul.

        Raises:
            SoulError: If the file cannot be read or is invalid.
        """
        if not path.exists():
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SoulError(f"soul: reading {path}: {e}") from e

        if not isinstance(data, dict):
            raise SoulError(f"soul: {path} must contain a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SoulError(f"soul: parsing {path}: {e}") from e

    def render(self) -> str:
        """Render the whole persona as system prompt text."""
        lines = [f"You are {self.identity.name}, a {self.identity.role}."]

        if self.identity.personality:
            lines.append(f"Personality: {', '.join(self.identity.personality)}.")
        if self.values.core:
            lines.append(f"Core values: {', '.join(self.values.core)}.")
        if self.values.priorities:
            lines.append(f"Priorities: {self.values.priorities}.")
        if self.tone.style:
            lines.append(f"Communication style: {self.tone.style}.")
        if self.tone.verbosity:
            lines.append(f"Verbosity: {self.tone.verbosity}.")
        if self.expertise.domains:
            lines.append(f"Areas of expertise: {', '.join(self.expertise.domains)}.")
        if self.boundaries.refuse:
            lines.append(f"Always refuse to: {'; '.join(self.boundaries.refuse)}.")
        if self.boundaries.disclaimer_topics:
            lines.append(f"Add disclaimers when discussing: {', '.join(self.boundaries.disclaimer_topics)}.")

        return "\n".join(lines) + "\n"

    def section(self, name: str) -> str:
        """Render one section; unknown names render the whole persona."""
        name = name.lower()
        parts: list[str] = []

        if name == "identity":
            parts = [f"Name: {self.identity.name}", f"Role: {self.identity.role}"]
            if self.identity.personality:
                parts.append(f"Personality: {', '.join(self.identity.personality)}")
        elif name == "values":
            parts = [f"Core: {', '.join(self.values.core)}"]
            if self.values.priorities:
                parts.append(f"Priorities: {self.values.priorities}")
        elif name == "tone":
            if self.tone.style:
                parts.append(f"Style: {self.tone.style}")
            if self.tone.verbosity:
                parts.append(f"Verbosity: {self.tone.verbosity}")
        elif name == "boundaries":
            if self.boundaries.refuse:
                parts.append(f"Refuse: {'; '.join(self.boundaries.refuse)}")
            if self.boundaries.disclaimer_topics:
                parts.append(f"Disclaimer topics: {', '.join(self.boundaries.disclaimer_topics)}")
        elif name == "expertise":
            parts = [f"Domains: {', '.join(self.expertise.domains)}"]
        else:
            return self.render()

        return "\n".join(parts)

    def seed_memory(self, memory: MemoryStore, agent_id: str) -> None:
        """Write ``memory_seeds`` into an agent's memory, skipping immutable keys already set."""
        for seed in self.memory_seeds:
            try:
                memory.set(agent_id, seed.key, seed.value)
            except ImmutableKeyError:
                logger.debug(f"Memory seed {seed.key!r} is immutable and already set")
