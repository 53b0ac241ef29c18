"""
dispatch_console.auth

Authentication/authorization package.

Responsibilities:
- JWT verification helpers.
- Connection-time authenticator (token -> Identity).
- Per-operation authorization gate.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package touches the store: the token is the only source of identity.
