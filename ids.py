import secrets
import time


def generate_id(prefix: str) -> str:
    """Return an opaque identifier such as ``entry_18c5f2a1b3d_9f04c2e1``.

    The millisecond timestamp keeps ids roughly ordered by creation; the random
    suffix keeps ids unique when several are minted within one millisecond.
    """
    millis = int(time.time() * 1000)
    return f"{prefix}_{millis:x}_{secrets.token_hex(4)}"
