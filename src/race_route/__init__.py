"""Route geometry, participant progress and route authoring for virtual races."""

__version__ = "0.1.0"
