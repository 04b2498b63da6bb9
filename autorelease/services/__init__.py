"""Adapters behind the orchestrator's collaborator interfaces (git, cargo, registry)."""
