"""
Marketplace - analyst subscription platform backend.

Packages:
- marketplace: configuration, external service clients, web app and CLI
- onboarding: the multi-step analyst onboarding wizard
"""

__version__ = "1.0.0"
