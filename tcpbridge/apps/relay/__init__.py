"""TCP relay built on the bridge; run it with ``python -m tcpbridge.apps.relay.main``."""
