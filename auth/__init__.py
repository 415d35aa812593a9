"""auth/ -- Credential, account directory and session token core for drlm-auth.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration values are passed in
by the process boundary, never read here.
api/ imports from auth/, not the other way around.
"""
