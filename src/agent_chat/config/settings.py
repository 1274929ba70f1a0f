"""
Configuration management for agent chat.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from agent_chat.core.domain.models import AgentDefinition
from agent_chat.core.domain.options import Option, Options


class AgentConfig(BaseModel):
    """Agent entry in the configuration file."""

    name: str
    model: Optional[str] = Field(default=None, description="Overrides default_model")
    instructions: str = Field(default="You are a helpful assistant.")
    description: str = Field(default="")
    prompts: List[str] = Field(default_factory=list, description="Sample prompts")


def _default_agents() -> Dict[str, AgentConfig]:
    return {
        "assistant": AgentConfig(
            name="Assistant",
            description="General purpose conversational assistant.",
            prompts=["What can you help me with?"],
        )
    }


class ChatSettings(BaseSettings):
    """Chat configuration settings with environment variable support."""

    # Model settings
    default_model: str = Field(default="gpt-4o-mini", description="Default LiteLLM model")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, description="Completion token limit")

    # Chat history display
    poll_interval: float = Field(default=2.0, description="Seconds between history polls")
    chunk_delay: float = Field(default=0.02, description="Seconds between rendered chunks")

    # Execution
    max_tool_rounds: int = Field(default=8, description="Tool call rounds per question")

    # Agents
    agents: Dict[str, AgentConfig] = Field(default_factory=_default_agents)

    # Debug settings
    debug_mode: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="WARNING", description="Logging level")

    model_config = {
        "env_file": ".env",
        "env_prefix": "AGENT_CHAT_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def load_from_file(cls, config_path: Path) -> "ChatSettings":
        """Load settings from a YAML configuration file."""
        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def save_to_file(self, config_path: Path) -> None:
        """Save settings to a YAML configuration file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_data = self.model_dump()
        with open(config_path, "w") as f:
            yaml.dump(config_data, f, default_flow_style=False, indent=2)

    def agent_definitions(self) -> Dict[str, AgentDefinition]:
        """Configured agents keyed by agent key."""
        return {
            key: AgentDefinition(
                key=key,
                name=agent.name,
                model=agent.model or self.default_model,
                instructions=agent.instructions,
                description=agent.description,
                prompts=tuple(agent.prompts),
            )
            for key, agent in self.agents.items()
        }

    def execution_options(self) -> Options:
        """Base options for every execution."""
        values: Dict[Option, Any] = {Option.TEMPERATURE: self.temperature}
        if self.max_tokens is not None:
            values[Option.MAX_TOKENS] = self.max_tokens
        return Options(values)
