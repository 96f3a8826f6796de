"""kvstore/ -- Asynchronous string-keyed storage adapters.

Layer rule: kvstore/ imports only stdlib + third-party libraries.
It does NOT import from auth/ or main.py.
auth/ imports from kvstore/, not the other way around.
"""
