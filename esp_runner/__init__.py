"""esp-runner: build a UEFI example, stage it into an ESP, boot it in QEMU.

Core design goals:
- Strictly sequential, fail-fast steps
- Idempotent staging (boot slot and firmware are replaced every run)
- Every path overridable for isolated runs
- Centralized logging
"""

__all__ = []
