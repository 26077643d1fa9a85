"""Artifact transfer through server-issued pipes."""

from ci_exec.transfer.archive import pack, unpack

__all__ = ["pack", "unpack"]
