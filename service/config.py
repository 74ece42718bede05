"""Runtime settings read from environment variables."""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    'data',
    'fallback_events.json'
)


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


@dataclass
class Settings:
    """Configuration for the events service."""
    feed_url: str = ''
    feed_limit: int = 500
    feed_timeout_seconds: int = 15
    fallback_path: str = DEFAULT_FALLBACK_PATH
    fallback_s3_uri: Optional[str] = None
    autocomplete_limit: int = 10
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``

        Returns:
            Settings instance
        """
        env = os.environ if env is None else env
        return cls(
            feed_url=env.get('FEED_URL', ''),
            feed_limit=_int_setting(env, 'FEED_LIMIT', 500),
            feed_timeout_seconds=_int_setting(env, 'FEED_TIMEOUT_SECONDS', 15),
            fallback_path=env.get('FALLBACK_PATH') or DEFAULT_FALLBACK_PATH,
            fallback_s3_uri=env.get('FALLBACK_S3_URI') or None,
            autocomplete_limit=_int_setting(env, 'AUTOCOMPLETE_LIMIT', 10),
            log_level=env.get('LOG_LEVEL', 'INFO')
        )
