"""
dispatch_console.api

API package for the dispatch console service.

Responsibilities:
- App factory (FastAPI + mounted Socket.IO server).
- Operational HTTP routes (health, dev tokens).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The business surface is the Socket.IO channel; HTTP here is for operators only.
