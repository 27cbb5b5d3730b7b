"""auth/ -- Session association and paste access control for Entry.

Layer rule: auth/ imports from stdlib, third-party libraries, core/ and logs/.
It does NOT import from api/ or pastes/ (pastes are passed in as values).
api/ and pastes/ import from auth/, not the other way around.
"""
