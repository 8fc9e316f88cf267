"""
Data Models

This package defines the data structures of the auth core.

Key Models:
- base.py: Base SQLAlchemy model with common type definitions
- profile.py: The `profiles` table and its upsert statement
- session.py: Provider sessions and session change notifications (Pydantic)
- user.py: The in-memory UserProfile and the ProfilePatch applied to it (Pydantic)

The data models follow these relationships:
- Session: Issued by the auth provider, carries the user id
- Profile: Database row keyed by that same user id
- UserProfile: Application view of a Profile row, never carries the PIN hash

Sessions and session changes are immutable and replaced wholesale. UserProfile is replaced
wholesale on fetch and otherwise only changes through an explicit ProfilePatch.
"""
