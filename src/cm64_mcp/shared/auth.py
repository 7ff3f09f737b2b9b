"""Personal Access Token lookup for the cm64 bridge.

The PAT is opaque to the bridge: it is sent to the CM64 endpoint as a
bearer credential and only the remote decides whether it is valid.
"""

import os

from .paths import get_token_file


def get_token(
    source: str,
    token_arg: str | None = None,
    env_var: str | None = None,
) -> str | None:
    """Find the PAT to use for a token source.

    The first non-empty value wins: the --token flag, then env_var, then the
    stored ~/.cm64/tokens/<source>.token file.

    Args:
        source: Token file stem ("bridge" for the cm64 command)
        token_arg: Value of --token, if given
        env_var: Name of the environment variable to consult (CM64_TOKEN)

    Returns:
        The token, or None when none is configured anywhere
    """
    if token_arg:
        return token_arg

    env_token = os.environ.get(env_var) if env_var else None
    if env_token:
        return env_token

    token_file = get_token_file(source)
    if not token_file.exists():
        return None
    # A blank file counts as no token
    return token_file.read_text().strip() or None


def auth_headers(token: str | None) -> dict[str, str]:
    """Authorization header for requests to the CM64 endpoint (empty without a token)."""
    return {"Authorization": f"Bearer {token}"} if token else {}
