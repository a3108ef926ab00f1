import logging
from typing import Optional

from fake_useragent import UserAgent

logger = logging.getLogger(__name__)

# Default fallback user agent string
FALLBACK_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36"
)


class UserAgentProvider:
    """
    Manages fake user-agent generation and rotation.
    Shared by browser sessions and the plain-HTTP adapters.
    """

    _ua: Optional[UserAgent] = None

    @classmethod
    def initialize(cls):
        if cls._ua is None:
            try:
                cls._ua = UserAgent(
                    browsers=["chrome", "firefox", "safari"],
                    os=["windows", "macos", "linux"],
                    fallback=FALLBACK_UA,
                )
            except Exception as e:
                logger.warning(
                    f"Failed to initialize fake_useragent, using fallback: {e}"
                )

    @classmethod
    def get_random(cls) -> str:
        """
        Return a random user-agent string, or the fallback if not initialized.
        """
        cls.initialize()
        if cls._ua:
            try:
                return cls._ua.random
            except Exception as e:
                logger.debug(f"fake_useragent lookup failed: {e}")
        return FALLBACK_UA
