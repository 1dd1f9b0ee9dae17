"""Game domain services: scoring, clocks, turn resolution and room operations.

This package contains the game rules and the conditioned writes that apply
them. HTTP routes and socket handlers import from here, keeping transport
concerns separated from core game mechanics.
"""
