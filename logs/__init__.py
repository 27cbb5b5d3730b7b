"""logs/ -- Append-only log records, including browser sessions.

Layer rule: logs/ imports only stdlib, third-party libraries, core/ and the
leaf module auth/crypto.py (for record ids). auth/association.py and pastes/
import from logs/, not the other way around.
"""
