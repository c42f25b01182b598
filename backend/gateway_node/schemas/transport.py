from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class Credentials(BaseModel):
    """
    Gateway credentials as handed over by the host's credential store.
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False, description="Bearer token for the gateway.")
    base_url: str = Field(default="", description="Custom base URL; empty means the configured default.")


class RequestDescriptor(BaseModel):
    """
    One outbound call to the gateway, built by an action and consumed by the transport.

    Either ``endpoint`` (an explicit path such as ``/v1/chat/completions``) or a
    model identifier (``model``, falling back to ``body["model"]``) must be
    present. With only a model, the transport resolves path and wire format
    through the endpoint map and reshapes the body accordingly.
    """

    model_config = ConfigDict(frozen=True)

    method: HttpMethod = "POST"
    endpoint: Optional[str] = Field(default=None, description="Explicit upstream path.")
    model: Optional[str] = Field(default=None, description="Model id used for endpoint resolution.")
    body: Optional[dict[str, Any]] = Field(default=None, description="JSON body.")
    query: Optional[dict[str, Any]] = Field(default=None, description="Query string parameters.")
    headers: Optional[dict[str, str]] = Field(default=None, description="Header overrides; win on conflict.")
    timeout_ms: Optional[int] = Field(default=None, ge=1, description="Per-attempt timeout.")

    @model_validator(mode="after")
    def _require_target(self) -> "RequestDescriptor":
        if self.endpoint:
            return self
        if self.resolved_model():
            return self
        raise ValueError("RequestDescriptor needs either `endpoint` or a model id")

    def resolved_model(self) -> str | None:
        if self.model:
            return self.model
        if isinstance(self.body, dict):
            value = self.body.get("model")
            if isinstance(value, str) and value:
                return value
        return None
