"""
Archive manifest reading.

Job archives are zip files carrying a META-INF/MANIFEST.MF. The entry class
is declared by the 'program-class' attribute, or failing that 'Main-Class'.
"""

import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from appboot.errors import PackagingError

MANIFEST_PATH = "META-INF/MANIFEST.MF"
PROGRAM_CLASS_ATTRIBUTE = "program-class"
MAIN_CLASS_ATTRIBUTE = "Main-Class"

ARCHIVE_SUFFIXES = (".jar", ".zip")


def parse_manifest(text: str) -> Dict[str, str]:
    """Parse the main section of a manifest.

    Attribute names are returned lower-cased. Lines starting with a single
    space continue the previous value.
    """
    attributes: Dict[str, str] = {}
    last_key: Optional[str] = None
    for raw_line in text.splitlines():
        if not raw_line.strip():
            # Blank line ends the main section
            if attributes:
                break
            continue
        if raw_line.startswith(" ") and last_key is not None:
            attributes[last_key] += raw_line[1:]
            continue
        name, sep, value = raw_line.partition(":")
        if not sep:
            continue
        last_key = name.strip().lower()
        attributes[last_key] = value.strip()
    return attributes


def read_manifest(archive: Path) -> Dict[str, str]:
    """
    Read the manifest of an archive.

    Returns:
        Attributes of the main section, empty if the archive has no manifest

    Raises:
        PackagingError: If the archive is missing or not a readable zip file
    """
    archive = Path(archive)
    if not archive.is_file():
        raise PackagingError(f"Job archive does not exist: {archive}")
    try:
        with zipfile.ZipFile(archive) as zf:
            try:
                data = zf.read(MANIFEST_PATH)
            except KeyError:
                return {}
    except (zipfile.BadZipFile, OSError) as e:
        raise PackagingError(f"Could not read job archive {archive}: {e}") from e
    return parse_manifest(data.decode("utf-8", errors="replace"))


def find_entry_class(archive: Path) -> Optional[str]:
    """Entry class declared in the archive manifest, if any."""
    attributes = read_manifest(archive)
    for attribute in (PROGRAM_CLASS_ATTRIBUTE, MAIN_CLASS_ATTRIBUTE):
        value = attributes.get(attribute.lower())
        if value:
            return value
    return None


def class_entry_name(class_name: str) -> str:
    """Archive member path of a class, e.g. 'org/example/Main.class'."""
    return class_name.replace(".", "/") + ".class"


def contains_class(archive: Path, class_name: str) -> bool:
    """Check whether an archive contains the compiled class."""
    try:
        with zipfile.ZipFile(archive) as zf:
            return class_entry_name(class_name) in zf.namelist()
    except (zipfile.BadZipFile, OSError):
        return False


def is_archive(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in ARCHIVE_SUFFIXES


def find_only_entry_class(archives: Iterable[Path]) -> Tuple[Path, str]:
    """
    Find the single archive that declares an entry class.

    Raises:
        PackagingError: If no archive or more than one archive declares one
    """
    found = []
    for archive in archives:
        entry_class = find_entry_class(archive)
        if entry_class is not None:
            found.append((archive, entry_class))

    if not found:
        raise PackagingError("No JAR with manifest attribute for entry class found.")
    if len(found) > 1:
        listing = ", ".join(f"{a.name} ({c})" for a, c in found)
        raise PackagingError(f"Multiple JAR archives with entry classes found: {listing}")
    return found[0]
