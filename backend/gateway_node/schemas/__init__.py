from .catalog import ModelCapability, ModelInfo, ModelOption
from .transport import Credentials, HttpMethod, RequestDescriptor

__all__ = [
    "Credentials",
    "HttpMethod",
    "ModelCapability",
    "ModelInfo",
    "ModelOption",
    "RequestDescriptor",
]
