"""auth/ -- Authentication and authorization package for EduTech.

Password hashing, token issuance/verification, access guards, and the
FastAPI dependency that resolves a request's identity.

Layer rule: auth/ imports only stdlib, third-party libraries, core/, and the
enums in store/models.py. It does NOT import from api/, services/, or audit/.
api/ and services/ import from auth/, not the other way around.
"""
