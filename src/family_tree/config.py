"""Editor configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from family_tree.core.storage import DEFAULT_QUOTA_BYTES

DEFAULT_API_URL = "http://localhost:8080/api"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EditorConfig:
    """Configuration for the family tree editor."""

    # Local storage
    data_dir: Path = field(default_factory=lambda: Path.home() / ".family_tree")
    storage_quota_bytes: int = DEFAULT_QUOTA_BYTES
    max_backups: int = 5

    # Remote backend (optional)
    use_backend: bool = False
    api_url: str = DEFAULT_API_URL
    api_timeout: float = 30.0

    @classmethod
    def from_env(cls, **overrides) -> EditorConfig:
        """Build config from FAMILY_TREE_* variables; keyword overrides win."""
        config = cls(
            data_dir=Path(os.getenv("FAMILY_TREE_DATA_DIR", str(Path.home() / ".family_tree"))).expanduser(),
            storage_quota_bytes=int(os.getenv("FAMILY_TREE_STORAGE_QUOTA", DEFAULT_QUOTA_BYTES)),
            max_backups=int(os.getenv("FAMILY_TREE_MAX_BACKUPS", 5)),
            use_backend=_env_bool("FAMILY_TREE_USE_BACKEND", False),
            api_url=os.getenv("FAMILY_TREE_API_URL", DEFAULT_API_URL),
            api_timeout=float(os.getenv("FAMILY_TREE_API_TIMEOUT", 30.0)),
        )
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)
        return config
