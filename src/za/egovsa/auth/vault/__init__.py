"""
Device-Local Credential Storage

This package holds everything the auth core keeps on the device between launches.

Key Components:
- storage.py: The SecureStorage protocol and its Fernet-encrypted Redis implementation
- pin.py: The PIN vault (PIN surrogate and cached email)

Entries are stored under fixed keys (see app.config): the cached email, the PIN surrogate,
and the provider session persisted by the provider client. Storage failures of any kind
surface as SecureStorageFailure so callers can tell them apart from a missing or wrong PIN.
"""
