from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ModelCapability = Literal["text", "image", "video", "embedding", "thinking"]


class ModelInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    capabilities: tuple[ModelCapability, ...]
    cost_tier: Literal["low", "medium", "high"]
    speed_tier: Literal["fast", "medium", "slow"]


class ModelOption(BaseModel):
    """An entry of a model drop-down shown by the host."""

    name: str
    value: str
    description: Optional[str] = Field(default=None)
