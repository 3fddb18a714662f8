"""Core components for the Pitch Coach engine."""

# Import interfaces for easier access
from .interfaces import (
    IAudioInput,
    IScheduler,
    ITimerHandle,
    ITonePlayer,
)

__all__ = ["IAudioInput", "IScheduler", "ITimerHandle", "ITonePlayer"]
