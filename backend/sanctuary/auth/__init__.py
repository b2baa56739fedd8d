"""Caller authentication.

Callers present a signed JWT in the ``x-auth-token`` header. The token carries
the user's id and role; the admin tier of the document gate checks the role.

Services:
    - decode_token / issue_token: JWT handling against the configured secret.
    - require_principal / optional_principal: FastAPI dependencies.
"""
