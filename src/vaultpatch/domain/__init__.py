"""Domain layer — types, request normalization, and pure content rules.

This layer depends only on stdlib, pydantic, and ruamel.yaml.
It must never import from services, infrastructure, commands, or config.
"""
