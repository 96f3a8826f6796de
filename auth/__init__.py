"""auth/ -- Credential registry, session manager and screen guards.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and
kvstore.base. It does NOT import a concrete store or main.py.
main.py wires a concrete store into auth/, not the other way around.
"""
