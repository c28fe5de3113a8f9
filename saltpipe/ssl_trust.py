"""Use the operating system trust store for Salt API TLS connections.

Salt masters are often served with certificates from an internal CA that the
bundled certifi file does not know. ``truststore`` lets ``requests`` verify
against the system store instead.

Environment Variables:
    SALTPIPE_DISABLE_OS_TRUST=1  -> keep certifi
    SALTPIPE_FORCE_OS_TRUST=1    -> raise if injection fails
"""

from __future__ import annotations

import os
import sys

OS_TRUST_INJECTED: bool = False
OS_TRUST_REASON: str = "not-attempted"

__all__ = ["inject_os_trust", "OS_TRUST_INJECTED", "OS_TRUST_REASON"]


def inject_os_trust() -> None:
    """Patch the ssl module so every requests session trusts the system CA store."""
    global OS_TRUST_INJECTED, OS_TRUST_REASON
    if os.environ.get("SALTPIPE_DISABLE_OS_TRUST") == "1":
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = "disabled-env"
        return
    try:
        import truststore

        truststore.inject_into_ssl()
    except Exception as exc:  # pragma: no cover - depends on the platform
        if os.environ.get("SALTPIPE_FORCE_OS_TRUST") == "1":
            raise
        sys.stderr.write(
            f"[saltpipe] Info: system trust store injection skipped: "
            f"{exc.__class__.__name__}: {exc}.\n"
        )
        OS_TRUST_INJECTED = False
        OS_TRUST_REASON = f"error:{exc.__class__.__name__}"
        return
    OS_TRUST_INJECTED = True
    OS_TRUST_REASON = "injected:ssl"
