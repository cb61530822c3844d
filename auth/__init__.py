"""auth/ -- Authentication and authorization package for Audit Monitor.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, tracker/, or storage/.
api/ imports from auth/, not the other way around.
"""
