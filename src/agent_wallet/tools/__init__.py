"""Dispatcher surface: typed wallet commands, tool definitions, stdio loop."""
