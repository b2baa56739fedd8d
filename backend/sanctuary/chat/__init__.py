"""Flagship sanctuary chat relay.

Messages are validated, shaped into a canonical record and published once to
the session's audio room. Nothing is stored: the backlog endpoint always
answers with an empty page.

Modules:
    - hub: WebSocket room membership and fan-out (the transport).
    - relay: validation, message construction and publish.
    - attachments: local storage for the optional media attachment.
    - router: HTTP and WebSocket endpoints.
"""
