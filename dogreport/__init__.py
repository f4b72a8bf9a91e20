"""
Dog walk reporting for Wag! owners.

Fetches the owner's past walks, keeps only those never reported before, and
renders them as a single HTML document:
  - one table per walk (walker, photos, flags, money, charges, timing, note)
  - most recent walk first

Walks are marked as reported only after the report has been written, so a
failed run is safely retried.
"""

__version__ = "0.1.0"
