"""Oracle model registry loaded from config/models.yaml.

The two oracle actions (content ordering and problem extraction) each
route to an ordered chain of models. ModelRouter walks that chain and
falls through to the next model when a provider fails or has no key.
"""

from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, model_validator


class Capability(StrEnum):
    """What an oracle action needs from a model.

    Ordering prompts carry the whole course listing, hence ``long_context``;
    both actions must answer with a bare JSON array.
    """

    LONG_CONTEXT = "long_context"
    JSON_OUTPUT = "json_output"


class CostPer1K(BaseModel):
    """Cost per 1000 tokens in USD."""

    input: float
    output: float


class ModelConfig(BaseModel):
    """Single model configuration."""

    model_id: str = ""  # populated from dict key during validation
    provider: str
    capabilities: list[Capability]
    max_context: int
    cost_per_1k: CostPer1K

    def estimate_cost(self, tokens_in: int, tokens_out: int) -> float:
        """Calculate cost in USD for given token counts."""
        return (
            tokens_in * self.cost_per_1k.input / 1000
            + tokens_out * self.cost_per_1k.output / 1000
        )


class ActionConfig(BaseModel):
    """One oracle action and the capabilities its models must have."""

    description: str = ""
    requires: list[Capability] = []


class ModelRegistryConfig(BaseModel):
    """Models, oracle actions and the model chain for each action.

    Every routed model exists and has the capabilities its action
    requires; every action has a ``default`` chain.
    """

    models: dict[str, ModelConfig]
    actions: dict[str, ActionConfig]
    routing: dict[str, dict[str, list[str]]]

    @model_validator(mode="after")
    def validate_routing(self) -> "ModelRegistryConfig":
        """Populate model_id fields and validate routing consistency."""
        for model_id, model in self.models.items():
            model.model_id = model_id

        errors: list[str] = []

        for action_name, strategies in self.routing.items():
            if action_name not in self.actions:
                errors.append(f"Routing references unknown action: '{action_name}'")
                continue

            if "default" not in strategies:
                errors.append(
                    f"Action '{action_name}' routing must have 'default' strategy"
                )

            action = self.actions[action_name]

            for strategy_name, model_chain in strategies.items():
                if not model_chain:
                    errors.append(
                        f"Action '{action_name}' strategy "
                        f"'{strategy_name}' has empty model chain"
                    )
                    continue

                for model_id in model_chain:
                    if model_id not in self.models:
                        errors.append(
                            f"Routing '{action_name}.{strategy_name}' "
                            f"references unknown model: '{model_id}'"
                        )
                        continue

                    missing = set(action.requires) - set(
                        self.models[model_id].capabilities
                    )
                    if missing:
                        errors.append(
                            f"Model '{model_id}' in "
                            f"'{action_name}.{strategy_name}' "
                            f"lacks required capabilities: {missing}"
                        )

        if errors:
            raise ValueError(
                "Model registry validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
        return self

    def get_chain(
        self,
        action: str,
        strategy: str = "default",
    ) -> list[ModelConfig]:
        """Get ordered model chain for action + strategy.

        Falls back to 'default' strategy if requested strategy not found.

        Raises:
            KeyError: if action not found in routing.
        """
        if action not in self.routing:
            raise KeyError(f"Unknown action: '{action}'")

        strategies = self.routing[action]
        chain = strategies.get(strategy) or strategies["default"]
        return [self.models[mid] for mid in chain]


def load_registry(config_path: Path) -> ModelRegistryConfig:
    """Load and validate model registry from YAML.

    Raises:
        FileNotFoundError: if YAML file doesn't exist.
        ValueError: if YAML parsing or validation fails.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Registry config not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse registry config '{config_path}': {e}") from e
    return ModelRegistryConfig.model_validate(raw)
