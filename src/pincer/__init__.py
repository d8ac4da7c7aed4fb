"""
Pincer - vendor-neutral LLM agent runtime

Normalizes the streaming protocols of several LLM vendors into one event
stream, and runs the tools a model calls inside a policy-bound sandbox.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pincer")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "__version__",
]
