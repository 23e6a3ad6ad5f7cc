# lexgate/core/__init__.py
from .runtime import RoutingRuntime, build_runtime

__all__ = ["RoutingRuntime", "build_runtime"]
