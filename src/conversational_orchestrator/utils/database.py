import secrets


def generate_message_id() -> str:
    """Random external message id: 7 random bytes rendered as 14 hex characters."""
    return secrets.token_hex(7)
