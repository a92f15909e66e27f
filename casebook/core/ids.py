"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Identifier generation for test cases, steps and Allure documents.

Identifiers are opaque: callers compare them but never parse them.
"""

import random
import time
import uuid

_fallback_rng = random.Random()


def pseudo_uuid(rng: random.Random | None = None) -> str:
    """
    Build a UUID-v4 shaped string from a pseudo-random generator.

    Args:
        rng: Random generator to draw from (module generator when omitted)

    Returns:
        A string shaped like ``xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx``

    """
    rng = rng or _fallback_rng
    digits = []
    for char in "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx":
        if char == "x":
            digits.append(f"{rng.getrandbits(4):x}")
        elif char == "y":
            # variant bits 10xx
            digits.append(f"{(rng.getrandbits(4) & 0x3) | 0x8:x}")
        else:
            digits.append(char)
    return "".join(digits)


def generate_uuid() -> str:
    """Return a new random identifier, preferring OS-backed randomness."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        # os.urandom is unavailable on this host
        return pseudo_uuid()


def now_ms() -> int:
    """Current wall clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)
