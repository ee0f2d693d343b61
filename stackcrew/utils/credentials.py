from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Union

from omegaconf import OmegaConf

logger = logging.getLogger(__name__)

# secrets-file key -> environment variable read by the provider SDK
API_KEYS: Dict[str, str] = {
    "deepseek_api": "DEEPSEEK_API_KEY",
    "openai_api": "OPENAI_API_KEY",
}


def export_api_keys(path: Union[str, Path] = "config.yml") -> List[str]:
    """Copy API keys from a local secrets file into the environment.

    Variables that are already set win over the file. Returns the names of
    the variables that were exported.
    """
    path = Path(path)
    if not path.exists():
        logger.debug("No secrets file at %s", path)
        return []
    secrets = OmegaConf.load(path)
    exported = []
    for key, env_name in API_KEYS.items():
        value = secrets.get(key)
        if value and not os.environ.get(env_name):
            os.environ[env_name] = str(value)
            exported.append(env_name)
    return exported
