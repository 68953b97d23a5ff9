"""Domain layer — commands, faults, results, and cancellation.

This layer depends only on stdlib and pydantic.
It must never import from services, plugins, commands, or config.
"""
