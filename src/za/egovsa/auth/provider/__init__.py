"""
External Service Clients

This package wraps the two remote services the auth core talks to over HTTP.

Key Components:
- client.py: Auth provider client (OTP, verification, refresh, sign-out, session persistence)
- events.py: In-process channel the provider client publishes session changes on
- backend.py: eGovSA REST backend client (home screen welcome data)

Both clients share one aiohttp ClientSession and bound every request with the configured
network timeout. Network failures surface as ProviderUnreachable or BackendError; the
provider's 4xx answers surface as ProviderRejected.
"""
