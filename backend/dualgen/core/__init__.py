"""Core broker logic: configuration, errors, classification and orchestration."""

from .classifier import analyze_prompt
from .config import Settings, get_settings
from .orchestrator import Orchestrator

__all__ = ["analyze_prompt", "Settings", "get_settings", "Orchestrator"]
