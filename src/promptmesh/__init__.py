"""promptmesh: layered prompt resources served over MCP."""

__version__ = "0.3.0"
