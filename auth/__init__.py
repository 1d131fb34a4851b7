"""auth/ -- Authentication and session-consistency engine for Grihome.

Resolver (identifiers) -> Verifier (credentials) -> Tracker (verification)
-> Issuer (claims) -> Projector (session), wired together by AuthService.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
api/ imports from auth/, not the other way around.
"""
