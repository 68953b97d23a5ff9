"""Service layer — registry, validation stage, dispatcher.

Services may import from the domain and config layers.
They must never import from commands or output.
"""
