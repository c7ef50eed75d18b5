"""workstation-setup: provision a freshly-installed Linux workstation.

Core design goals:
- Declarative, idempotent steps (probe, then act, then re-probe)
- Explicit dependency order and per-step fatal policy
- Verified downloads before running third-party installers
- Centralized logging (one log file per run, mirrored to the console)
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
