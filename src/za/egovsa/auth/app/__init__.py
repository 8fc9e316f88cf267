"""
Auth Core Application Layer

This package wires the session store, profile fetcher and PIN vault together into the auth
context the UI layer consumes, and provides the ambient pieces around it.

Key Components:
- context.py: AuthContext, the launch state machine and the onboarding operations
- session_store.py: Last-write-wins session state fed by provider notifications
- profiles.py: Profile repository and the in-memory profile fetcher
- runtime.py: Builds an AuthContext and its resources, and tears them down
- config.py: Configuration management using Pydantic settings
- metrics.py: Metrics abstraction (Telegraf/StatsD or no-op)
- cli.py: The egovsa-auth command line entry point

The AuthContext is never a module-level singleton: runtime.auth_context builds one per
process and hands it to the caller.
"""
