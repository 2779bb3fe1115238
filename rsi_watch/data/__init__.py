"""
Market data module.

Fetches closing-price series and 24h ticker snapshots from the exchange's
public REST API.
"""
