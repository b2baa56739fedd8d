"""Agora RTC credential issuance.

Two issuance paths with different trust levels:
    - session-bound (1 hour): requires a live sanctuary session.
    - channel-direct refresh (2 hours): requires only a channel name.
"""
