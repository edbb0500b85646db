"""
Domain layer containing core business logic and domain services.

Submodules:
- live: Broadcast orchestration (transmissions, relays).
- utils: Domain-specific utilities (ID generation, store error translation).
"""
