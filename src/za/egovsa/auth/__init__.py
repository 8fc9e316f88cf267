"""
eGovSA Auth - session and PIN authentication core

This package implements the client-side authentication core of the eGovSA national digital
services app. It decides, at launch, whether the device holds a live provider session, can
be unlocked with a locally cached PIN, or must go through onboarding, and it keeps the
signed-in user's profile in memory for the rest of the process.

Key Components:
- app: The auth context that coordinates everything, plus config, metrics and the CLI
- provider: Clients for the hosted auth provider and the REST backend
- model: Session, profile and database models
- vault: Encrypted device-local storage and the PIN vault built on top of it

Architecture Overview:
1. Session Restoration:
   - The provider client restores any persisted session and refreshes it when expired
   - Provider session changes are pushed through an in-process channel
   - The session store applies them last-write-wins and reloads the profile

2. PIN Unlock:
   - Without a session, the PIN vault decides between PIN unlock and onboarding
   - A correct PIN loads the profile by the cached email

3. Onboarding:
   - OTP issuance and verification go through the provider
   - Registration stores the PIN locally and a SHA-256 hash of it in the profile row
"""
