"""
Load Solana keypairs from Solana CLI style JSON files.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Union

from solders.keypair import Keypair

from ....errors import ConfigurationError

DEFAULT_KEYPAIR_PATH = Path.home() / ".config" / "solana" / "id.json"


@lru_cache(maxsize=None)
def _load(path: Path) -> Keypair:
    try:
        raw = json.loads(path.read_text())
        return Keypair.from_bytes(bytes(raw))
    except (OSError, ValueError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid keypair file {path}: {e}",
            config_key="keypair",
            config_value=str(path),
            cause=e,
        ) from e


def load_keypair(path: Union[str, Path, None] = None) -> Keypair:
    """Load a keypair; ``None`` or ``"config"`` means the Solana CLI default."""
    if path is None or path == "config":
        path = DEFAULT_KEYPAIR_PATH
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigurationError(
            f"Keypair not found at: {path}", config_key="keypair", config_value=str(path)
        )
    return _load(path)
