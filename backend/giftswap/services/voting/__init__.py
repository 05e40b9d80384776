"""Voting domain services.

Round lifecycle, vote ledger, round resolution and history, progression
and end-of-game statistics. HTTP routes and socket handlers call into
these modules; only :mod:`giftswap.store` commits.
"""
