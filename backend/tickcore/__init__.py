"""Core logic for bar aggregation, indicators, scoring and signal lifecycle.

This package contains pure business logic with no I/O dependencies
(no network, no files, no timers). Everything that talks to the outside
world lives in the runtime package (tickapp/), which drives this core
from a tick stream and a wall-clock resolution loop.
"""
