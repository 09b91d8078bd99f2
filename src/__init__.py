"""FlowCanvas: graph state and editing engine behind the flow editor UI."""

__version__ = "0.1.0"
