"""Build-server API clients."""

from ci_exec.api.builds import BuildClient
from ci_exec.api.pipes import Pipe, PipeClient
from ci_exec.api.session import ApiSession

__all__ = ["ApiSession", "BuildClient", "Pipe", "PipeClient"]
