"""Core interfaces/abstractions.

Why:
- Defines the contracts (Protocol) that concrete adapters implement.
- Dependencies point inwards: the Core depends on abstractions only.
"""
