"""User id resolution for quota and history scoping.

Authentication is out of scope for safepost: the user id is only a key that
partitions checks, usage and cached state between people sharing a store.

Resolution order (stops at first success):
  1. SAFEPOST_USER_ID environment variable (folded in by load_config)
  2. ``user_id`` in .safepost.yml
  3. The operating-system login name
"""

from __future__ import annotations

import getpass
import logging

logger = logging.getLogger(__name__)

_FALLBACK_USER_ID = "local"


def resolve_user_id(config: dict) -> str:
    """Return the user id to scope all store queries by. Never raises."""
    user_id = config.get("user_id")
    if user_id:
        return str(user_id)

    # getpass raises KeyError (no passwd entry) or OSError (3.13+) in
    # containers that run as an anonymous uid.
    try:
        login = getpass.getuser()
    except (KeyError, OSError):
        login = None

    if login:
        logger.debug("Resolved user id from login name: %s", login)
        return login
    return _FALLBACK_USER_ID
