"""Domain layer — command table models and rules.

This layer depends only on stdlib and pydantic.
It must never import from plugins, remote, services, commands, or config.
"""
