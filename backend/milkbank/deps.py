from fastapi import Header


def get_actor(x_actor: str = Header(default="system", min_length=1)) -> str:
    """Name of the operator performing the request, recorded in the audit log."""

    return x_actor.strip() or "system"
