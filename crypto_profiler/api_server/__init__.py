"""
API server package: HTTP interface of the watchlist engine.

GET /check answers sanction lookups from the local store; GET /health is the
liveness check. The refresh loop is started by the app lifespan and never
blocks request handling.
"""
