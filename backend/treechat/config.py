"""Chat preamble loading.

The preamble lives in a YAML file next to this module; deployments point
TREECHAT_CHAT_CONFIG at their own copy.
"""

import logging
from pathlib import Path

import yaml

from treechat.models import ChatConfig

logger = logging.getLogger(__name__)

DEFAULT_CHAT_CONFIG_PATH = Path(__file__).parent / "chat_config.yml"


def load_chat_config(path: str | Path | None = None) -> ChatConfig:
    """Read the chat preamble. Missing keys fall back to ChatConfig defaults.

    A missing file is not an error: the built-in defaults are used.
    """
    config_path = Path(path) if path else DEFAULT_CHAT_CONFIG_PATH
    if not config_path.exists():
        logger.warning("Chat config %s not found, using defaults", config_path)
        return ChatConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    return ChatConfig.model_validate(data)
