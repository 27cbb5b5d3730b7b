"""pastes/ -- Paste records, their storage, encryption gate, federation and lifecycle.

Layer rule: pastes/ may import core/, auth/ and logs/. api/ is the only
package that imports pastes/service.py.
"""
