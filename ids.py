import secrets
import string

# URL-safe alphabet, same characters nanoid uses
ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_LENGTH = 8


def generate_id(length: int = ID_LENGTH) -> str:
    """Return a random public paste id. Uniqueness is checked by the store."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
