"""Version information for LD Active Monitor."""

import os
from typing import Dict, Optional

__version__ = "0.3.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))


def get_version_info() -> Dict[str, Optional[str]]:
    """Get version plus the build info set by Docker build args."""
    return {
        "version": __version__,
        "build_date": os.getenv("APP_BUILD_DATE"),
        "git_commit": os.getenv("APP_GIT_COMMIT"),
    }
