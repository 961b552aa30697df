"""Locate the user job artifact among the configured artifact references."""

import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from appboot import options
from appboot.errors import ArtifactCardinalityError

if TYPE_CHECKING:
    from appboot.config import Configuration

logger = logging.getLogger(__name__)


def reference_name(reference: str) -> str:
    """File name of an artifact reference (URI or plain path)."""
    path = urlparse(reference).path or reference
    return PurePosixPath(path).name


def locate_user_artifact(
    library_directory: Optional[Path],
    configuration: "Configuration",
) -> Optional[Path]:
    """
    Map the configured artifact references to at most one local file.

    Args:
        library_directory: Local user library directory, or None to resolve
            relative to the working directory
        configuration: Configuration holding pipeline.jars

    Returns:
        The local artifact file, or None when no artifact is configured

    Raises:
        ArtifactCardinalityError: If more than one artifact is configured
    """
    references = configuration.get_optional(options.PIPELINE_JARS) or []
    candidates = [
        Path(library_directory) / reference_name(ref) if library_directory is not None
        else Path(reference_name(ref))
        for ref in references
    ]

    if len(candidates) > 1:
        raise ArtifactCardinalityError("Should only have at most one jar.")

    if not candidates:
        return None

    logger.debug(f"Resolved user artifact {references[0]} to {candidates[0]}")
    return candidates[0]
