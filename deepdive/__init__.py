"""Deep Dive: agent-based social simulation with dynamic personas."""

__version__ = "0.1.0"
