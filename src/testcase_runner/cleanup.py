from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .languages import Language

logger = logging.getLogger(__name__)


def delete_binary(language: Language, artifact_path: str | Path) -> bool:
    """Remove a generated artifact from the file system, if present.

    Directories (e.g. project-style build output) are removed recursively.
    Failures are logged and reported as False, never raised.

    Example:
        ```python
        removed = delete_binary(Language("cpp", "g++"), "/tmp/sol.bin")
        ```
    """
    if language.skip_compile:
        logger.info("Skipping deletion of binary as it's not a compiled language.")
        return False
    target = Path(artifact_path)
    logger.info("Deleting binary %s", target)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except FileNotFoundError:
        logger.warning("Binary %s was already removed", target)
        return False
    except OSError as exc:
        logger.error("Error while deleting binary %s: %s", target, exc)
        return False
    return True
