"""Selection of a Content Delivery API token for hydration."""

import logging
from typing import Any, Optional

from .call_context import CallContext
from .models import CDATokenInfo

logger = logging.getLogger(__name__)


def resolve_cda_token(ctx: Optional[CallContext], api: Any, space_id: int) -> CDATokenInfo:
    """Pick the delivery token to hydrate a space with.

    A preview token ("private" access) is preferred because it can read
    drafts; a public token is the fallback. Failing to list keys is not an
    error: the result is simply unavailable and hydration is skipped.

    Args:
        ctx: Call context (checked before listing)
        api: Client providing list_space_api_keys(space_id)
        space_id: Source space id

    Returns:
        CDATokenInfo (available is False when no usable key exists)
    """
    info = CDATokenInfo()
    if ctx is not None and ctx.done:
        return info
    try:
        keys = api.list_space_api_keys(space_id)
    except Exception as e:
        logger.warning(f"Could not list API keys of space {space_id}: {e}")
        return info

    for key in keys:
        access = (key.access or "").lower()
        if access == "public" and not info.public:
            info.public = key.token
        elif access == "private" and not info.preview:
            info.preview = key.token

    if info.preview:
        info.selected, info.kind = info.preview, "preview"
    elif info.public:
        info.selected, info.kind = info.public, "public"
    info.available = bool(info.selected)
    return info
