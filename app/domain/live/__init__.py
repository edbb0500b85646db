"""
Live broadcast domain logic.

Includes:
- transmission: Per-owner transmissions fanned out to external platforms.
- relay: External stream pulled into the owner's media server application.
"""
