from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_sync_id() -> str:
    """Generate a new sync run ID."""
    return new_uuid()


def new_request_id() -> str:
    """Generate an idempotency token for Drive create requests."""
    return f"create-{new_uuid()}"
