from .router import ACTION_HANDLERS, build_transport, route

__all__ = ["ACTION_HANDLERS", "build_transport", "route"]
