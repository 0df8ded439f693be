"""nprofile - cross-platform network profile manager

Philosophy:
- One config describes every platform's commands for a profile
- Profiles compose through dependencies
- Fail fast on structural mistakes, before any command runs

Profiles are named shell procedures that enable or disable a network
configuration (Wi-Fi, VPN, tunnels). nprofile resolves a profile's
dependencies, renders its commands with parameters and runs them in order.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
