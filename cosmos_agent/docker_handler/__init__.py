"""Docker runtime transport with error translation."""

from .transport import DockerTransport, RuntimeTransport

__all__ = [
    "DockerTransport",
    "RuntimeTransport",
]
