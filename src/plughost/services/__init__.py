"""Service layer — read-only inspection operations returning ServiceResult.

Services may import from domain, plugins, remote, and config.
They must never import from commands or output.
"""
