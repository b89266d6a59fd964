"""auth/ -- Authentication and authorization package for ThingGate.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or things/.
api/ and things/ import from auth/, not the other way around.
"""
