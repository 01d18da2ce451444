"""
Eligibility gate for the direct-API path.

Requests that fail the gate are handled by the heavier sandboxed path,
which lives outside this package.
"""

import skald.core.types as types


def is_eligible(
    group: types.Group,
    has_media: bool,
    *,
    enabled: bool,
    client_available: bool,
) -> bool:
    """
    Decide whether a request can be served by the engine.

    Args:
        group: The group the request belongs to.
        has_media: Whether the request carries images, audio or documents.
        enabled: Global enable flag.
        client_available: Whether the model client has credentials.

    Returns:
        False when disabled globally or by the group, when media is present,
        or when the client is unavailable. True otherwise.
    """
    if not enabled:
        return False
    if group.enable_fast_path is False:
        return False
    if has_media:
        return False
    return client_available
