"""Orchestrator module -- session configuration and pipeline wiring.

Provides ``SessionConfig`` / ``load_session_config`` for YAML-driven
session setup and ``PerceptionSession``, which connects window
acquisition, periodic capture and board assembly on one serial
scheduler.
"""

from .config import SessionConfig, load_session_config
from .session import PerceptionListener, PerceptionSession

__all__ = [
    "PerceptionListener",
    "PerceptionSession",
    "SessionConfig",
    "load_session_config",
]
