"""Rise/fall signal classification engine.

This package contains pure, synchronous logic with no I/O: indicator math,
the rule-based setups, vote aggregation and the engine that ties them
together. The feed-side adapters live in signal_feed/.
"""

from signal_core.engine import SignalEngine, generate_signal

__all__ = ["SignalEngine", "generate_signal"]
