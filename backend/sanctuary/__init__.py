"""Sanctuary relay: RTC credentials, chat relay and stored-file access."""
