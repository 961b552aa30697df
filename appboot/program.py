"""
Packaged programs and the strategies that retrieve them.

A job is either script-based or artifact-based. The choice is made once by
the resolver and captured in a tagged strategy value:

- ScriptMode: no archive validation, the script driver runs the job
- ArtifactMode: an archive (or, when none is configured, the user library
  classpath) provides the entry class

Both are evaluated by ``retrieve_packaged_program``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Union

from appboot import options
from appboot.errors import PackagingError
from appboot.manifest import contains_class, find_entry_class, find_only_entry_class, is_archive

if TYPE_CHECKING:
    from appboot.config import Configuration

logger = logging.getLogger(__name__)

SCRIPT_DRIVER_ENTRY = "appboot.script.ScriptDriver"
SCRIPT_GATEWAY_ENTRY = "appboot.script.GatewayServer"
SCRIPT_ENTRY_CLASSES = (SCRIPT_DRIVER_ENTRY, SCRIPT_GATEWAY_ENTRY)

# Program arguments that name a script or script module
SCRIPT_ARGUMENT_MARKERS = ("-py", "--python", "-pym", "--pyModule")


def is_script_entry(entry_class_name: Optional[str], extra_entries: Iterable[str] = ()) -> bool:
    if entry_class_name is None:
        return False
    return entry_class_name in SCRIPT_ENTRY_CLASSES or entry_class_name in set(extra_entries)


def has_script_arguments(program_arguments: Optional[Sequence[str]]) -> bool:
    if not program_arguments:
        return False
    return any(arg in SCRIPT_ARGUMENT_MARKERS for arg in program_arguments)


def is_script_job(
    entry_class_name: Optional[str],
    program_arguments: Optional[Sequence[str]],
    configuration: Optional["Configuration"] = None,
) -> bool:
    """Check the entry class and, independently, the arguments for a script job marker."""
    extra = configuration.get(options.SCRIPT_ENTRY_CLASSES) if configuration is not None else []
    return is_script_entry(entry_class_name, extra) or has_script_arguments(program_arguments)


@dataclass(frozen=True)
class PackagedProgram:
    """
    A resolved, ready-to-run user program.

    Attributes:
        entry_point_class: Fully qualified entry class
        arguments: Program arguments
        job_artifact: Job archive, None for script jobs and class-path mode
        user_classpaths: URIs of user library files and configured classpaths
        is_script: True for script-based jobs
    """
    entry_point_class: str
    arguments: tuple[str, ...] = ()
    job_artifact: Optional[Path] = None
    user_classpaths: tuple[str, ...] = ()
    is_script: bool = False

    def get_job_artifact_and_dependencies(self) -> list[str]:
        """URIs of the job archive, empty when the job has none."""
        if self.job_artifact is None:
            return []
        return [self.job_artifact.absolute().as_uri()]


@dataclass(frozen=True)
class ScriptMode:
    """Retrieve a script-based program."""
    library_directory: Optional[Path]
    entry_class_name: Optional[str]
    program_arguments: tuple[str, ...]
    configuration: "Configuration"

    def get_packaged_program(self) -> PackagedProgram:
        return retrieve_packaged_program(self)


@dataclass(frozen=True)
class ArtifactMode:
    """Retrieve a program from a job archive or the user classpath.

    Without an artifact and a library directory, the entry class is searched
    in the archives named by ``system_classpath`` (container CLASSPATH entries).
    """
    library_directory: Optional[Path]
    artifact_file: Optional[Path]
    entry_class_name: Optional[str]
    program_arguments: tuple[str, ...]
    configuration: "Configuration"
    system_classpath: tuple[str, ...] = ()

    def get_packaged_program(self) -> PackagedProgram:
        return retrieve_packaged_program(self)


ProgramRetrievalStrategy = Union[ScriptMode, ArtifactMode]


def library_files(library_directory: Optional[Path]) -> list[Path]:
    """All files below the user library directory, sorted."""
    if library_directory is None or not Path(library_directory).is_dir():
        return []
    return sorted(p for p in Path(library_directory).rglob("*") if p.is_file())


def user_classpaths(
    library_directory: Optional[Path],
    configuration: "Configuration",
    exclude: Optional[Path] = None,
) -> tuple[str, ...]:
    """Classpath URIs: user library files (minus the job archive) then pipeline.classpaths."""
    excluded = exclude.absolute() if exclude is not None else None
    uris = [
        p.absolute().as_uri()
        for p in library_files(library_directory)
        if p.absolute() != excluded
    ]
    uris.extend(configuration.get_optional(options.PIPELINE_CLASSPATHS) or [])
    return tuple(uris)


def _script_program(strategy: ScriptMode) -> PackagedProgram:
    entry = strategy.entry_class_name or SCRIPT_DRIVER_ENTRY
    return PackagedProgram(
        entry_point_class=entry,
        arguments=tuple(strategy.program_arguments),
        user_classpaths=user_classpaths(strategy.library_directory, strategy.configuration),
        is_script=True,
    )


def _archive_program(strategy: ArtifactMode) -> PackagedProgram:
    artifact = Path(strategy.artifact_file)
    entry = strategy.entry_class_name or find_entry_class(artifact)
    if entry is None:
        raise PackagingError(
            f"Neither a 'Main-Class', nor a 'program-class' entry was found in the jar file {artifact}."
        )

    library_archives = [p for p in library_files(strategy.library_directory) if is_archive(p)]
    if not contains_class(artifact, entry) and not any(
        contains_class(p, entry) for p in library_archives
    ):
        raise PackagingError(
            f"The program's entry point class '{entry}' was not found in the jar file {artifact}."
        )

    return PackagedProgram(
        entry_point_class=entry,
        arguments=tuple(strategy.program_arguments),
        job_artifact=artifact,
        user_classpaths=user_classpaths(
            strategy.library_directory, strategy.configuration, exclude=artifact
        ),
    )


def classpath_archives(entries: Iterable[str]) -> list[Path]:
    """Archives named by class path entries; ``dir/*`` expands to the archives in dir."""
    archives: list[Path] = []
    for entry in entries:
        if entry.endswith("*"):
            directory = Path(entry[:-1] or ".")
            if directory.is_dir():
                archives.extend(sorted(p for p in directory.iterdir() if is_archive(p)))
        elif is_archive(Path(entry)):
            archives.append(Path(entry))

    unique: list[Path] = []
    seen = set()
    for archive in archives:
        key = archive.absolute()
        if key not in seen:
            seen.add(key)
            unique.append(archive)
    return unique


def _classpath_program(strategy: ArtifactMode) -> PackagedProgram:
    entry = strategy.entry_class_name
    if entry is None:
        if strategy.library_directory is not None:
            candidates = [p for p in library_files(strategy.library_directory) if is_archive(p)]
        else:
            candidates = classpath_archives(strategy.system_classpath)
        archive, entry = find_only_entry_class(candidates)
        logger.info(f"Using entry class {entry} declared by {archive.name}")


    return PackagedProgram(
        entry_point_class=entry,
        arguments=tuple(strategy.program_arguments),
        user_classpaths=user_classpaths(strategy.library_directory, strategy.configuration),
    )


def retrieve_packaged_program(strategy: ProgramRetrievalStrategy) -> PackagedProgram:
    """
    Build the packaged program described by a retrieval strategy.

    Raises:
        PackagingError: If the archive is unreadable or the entry class cannot be found
    """
    if isinstance(strategy, ScriptMode):
        return _script_program(strategy)
    if isinstance(strategy, ArtifactMode):
        if strategy.artifact_file is not None:
            return _archive_program(strategy)
        return _classpath_program(strategy)
    raise TypeError(f"Unknown program retrieval strategy: {type(strategy).__name__}")
