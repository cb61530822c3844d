"""tracker/ -- Audit-domain entities, their persistence and dashboard aggregates.

Layer rule: tracker/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, auth/, or storage/.
"""
