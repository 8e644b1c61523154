"""
Runtime configuration from environment variables.

- GENOME_CC_STATE: state directory for the sealed world state (default: ./state)
- GENOME_CC_LOG_LEVEL: logging level name (default: INFO)
- GENOME_CC_MSP_ID: organisation of the calling client (default: Org1MSP)
- GENOME_CC_PUBLIC_MEMBERS: members of collectionGenes (default: Org1MSP,Org2MSP)
- GENOME_CC_PRIVATE_MEMBERS: members of collectionGenesPrivateDetails (default: Org1MSP)
- GENOME_CC_LEGACY_INDEX_CLEANUP: also remove color~name index keys on delete (default: false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple


def _opt(name: str, default: str) -> str:
    """Get optional environment variable with default."""
    return os.getenv(name, default)


def _opt_bool(name: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _opt_list(name: str, default: str) -> Tuple[str, ...]:
    """Parse comma-separated environment variable."""
    return tuple(p.strip() for p in _opt(name, default).split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the CLI and the HTTP gateway."""

    STATE_DIR: str = "./state"
    LOG_LEVEL: str = "INFO"
    MSP_ID: str = "Org1MSP"
    PUBLIC_MEMBERS: Tuple[str, ...] = ("Org1MSP", "Org2MSP")
    PRIVATE_MEMBERS: Tuple[str, ...] = ("Org1MSP",)

    # Older deployments wrote delete-path index keys under color~name
    LEGACY_INDEX_CLEANUP: bool = False

    @staticmethod
    def load() -> Settings:
        """Load settings from environment variables."""
        return Settings(
            STATE_DIR=_opt("GENOME_CC_STATE", "./state"),
            LOG_LEVEL=_opt("GENOME_CC_LOG_LEVEL", "INFO").upper(),
            MSP_ID=_opt("GENOME_CC_MSP_ID", "Org1MSP"),
            PUBLIC_MEMBERS=_opt_list("GENOME_CC_PUBLIC_MEMBERS", "Org1MSP,Org2MSP"),
            PRIVATE_MEMBERS=_opt_list("GENOME_CC_PRIVATE_MEMBERS", "Org1MSP"),
            LEGACY_INDEX_CLEANUP=_opt_bool("GENOME_CC_LEGACY_INDEX_CLEANUP", False),
        )
