"""
Shared building blocks used across features.

- errors: HTTP-facing error taxonomy
- clock: timezone-aware time helpers
- repository: generic table operations
- state_token: signed OAuth state
- vault: encrypted provider credentials
"""
