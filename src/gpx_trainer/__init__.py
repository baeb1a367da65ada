"""GPX Trainer - Virtual drivetrain and route simulation for smart trainers."""

import subprocess

__version_date__ = "2025-02-14"


def get_git_hash() -> str:
    """Short hash of the checked-out commit, used in --version output."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return result.stdout.strip() if result.returncode == 0 else "unknown"
