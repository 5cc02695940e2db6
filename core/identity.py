"""Identity normalization shared by every identity comparison."""

from __future__ import annotations


def normalize(raw) -> str:
    """Strip a device/resource suffix (``:NN``) from the local part of an identity.

    ``"123:61@s.whatsapp.net"`` -> ``"123@s.whatsapp.net"``, ``"42:7"`` -> ``"42"``.
    Never raises; anything unparseable comes back unchanged (``None`` becomes ``""``).
    """
    if raw is None:
        return ""
    try:
        text = str(raw).strip()
        local, sep, domain = text.partition("@")
        if not sep:
            return text.split(":", 1)[0]
        return f"{local.split(':', 1)[0]}@{domain}"
    except Exception:
        return raw if isinstance(raw, str) else ""


def same_party(a, b) -> bool:
    return normalize(a) == normalize(b)
