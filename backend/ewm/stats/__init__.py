"""
Statistics service: an append-only log of endpoint hits and a grouped view
count query. Deployed as its own ASGI app (ewm.stats.main:app) with its own
database; the main service reaches it only over HTTP.
"""
