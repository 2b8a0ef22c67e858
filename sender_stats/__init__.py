"""
Gmail sender statistics.

A single-run batch job that:
- Lists every message in a Gmail account, page by page
- Skips messages already recorded in PostgreSQL
- Normalizes the sender of each new message
- Keeps a running per-sender message count
"""
