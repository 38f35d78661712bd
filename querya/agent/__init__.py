"""The agent loop and its outcome types."""

from querya.agent.loop import AgentLoop, LoopOutcome, LoopState, StopReason

__all__ = ["AgentLoop", "LoopOutcome", "LoopState", "StopReason"]
