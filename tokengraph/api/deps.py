import logging
import os
import threading
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from tokengraph.adapters.clock import SystemClock
from tokengraph.adapters.fs.token_files import TokenFileSystem
from tokengraph.components.tokens import TokenStore, create_token_store
from tokengraph.rules.loader import load_rules
from tokengraph.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.tokens_dir = Path(os.environ.get("TOKENGRAPH_TOKENS_DIR", "./tokens"))
        self.rules_path = Path(os.environ.get("TOKENGRAPH_RULES", str(self.base_dir / "rules.yaml")))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
def read_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.info("No rules file at %s, using defaults", settings.rules_path)
        return Rules()
    return load_rules(settings.rules_path)


@lru_cache
def get_rules() -> Rules:
    return read_rules(get_settings())


# --- Session ---
class TokenSession:
    """The process-wide store plus the lock that serializes access to it."""

    def __init__(self, store: TokenStore, rules: Rules) -> None:
        self.store = store
        self.rules = rules
        self.lock = threading.Lock()


@lru_cache
def get_session() -> TokenSession:
    rules = get_rules()
    return TokenSession(create_token_store(rules, SystemClock()), rules)


# --- Adapters ---
def get_token_files(settings: Settings = Depends(get_settings)) -> TokenFileSystem:
    return TokenFileSystem(settings.tokens_dir)
