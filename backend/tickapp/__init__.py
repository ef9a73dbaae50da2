"""Runtime for the tick-to-signal engine.

Drives the pure core (tickcore/) from a tick stream and a wall-clock
resolution loop, and owns configuration, the prediction oracle runner,
news generation, replay loaders and event publishing.
"""
