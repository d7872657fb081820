"""Environment-based credential and endpoint resolution for seeded providers."""

from __future__ import annotations

import os


def get_env_credential(provider_type: str) -> str | None:
    """Get a credential for a provider type from environment variables.

    Returns None for the local-inference provider, which needs no credential.
    """
    if provider_type == "gemini":
        return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")

    env_map: dict[str, str] = {
        "anthropic": "ANTHROPIC_API_KEY",
        "openai": "OPENAI_API_KEY",
    }

    env_var = env_map.get(provider_type)
    return os.environ.get(env_var) if env_var else None


def get_env_base_url(provider_type: str) -> str | None:
    """Get a base URL override for a provider type."""
    if provider_type != "ollama":
        return None
    host = os.environ.get("OLLAMA_HOST")
    if not host:
        return None
    if not host.startswith(("http://", "https://")):
        host = f"http://{host}"
    return host.rstrip("/")
