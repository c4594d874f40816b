"""auth/ -- Credential store, token issuing, and the request access gate.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, web/, or resources/.
api/ and web/ import from auth/, not the other way around.
"""
