"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the conversion pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the conversion progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, pattern, namespace, dumpDate,
                   noTemplates, extractCitations, markers,
                   preserveUnknownTemplates, noCategories
        - env_check: textOutputdir, envOK
        - sources_read: sources
        - articles_convert: articles
        - results_write: convertResult
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing wikitext source files
        outputdir: Base output directory for cleaned text
        verbosity: Logging verbosity level (1-3)
        pattern: Glob selecting source files within inputdir
        namespace: Namespace applied to every page
        dumpDate: Reference date (YYYY-MM-DD) for date words and ages
        noTemplates: Skip template and parser-function expansion
        extractCitations: Keep citations and reference content
        markers: Marker types to render ("all", "none" or comma list)
        preserveUnknownTemplates: Keep unknown templates verbatim
        noCategories: Omit the trailing CATEGORIES line
        envOK: Environment validation passed
        textOutputdir: Resolved output directory
        sources: (title, path, raw text) per source file
        articles: (path, rendered text, Article) per converted page
        convertResult: Summary (files_written, redirects, exhausted)
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    pattern: str = field(default="*.wiki")
    namespace: str = field(default="")
    dumpDate: Optional[str] = field(default=None)
    noTemplates: bool = field(default=False)
    extractCitations: bool = field(default=False)
    markers: str = field(default="all")
    preserveUnknownTemplates: bool = field(default=False)
    noCategories: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    textOutputdir: Path = field(default=Path("/"))
    sources: Optional[List[Any]] = field(default=None)
    articles: Optional[List[Any]] = field(default=None)
    convertResult: Optional[Dict] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Merges CLI options with explicitly provided directories to create
        the initial program state for the conversion pipeline.

        Args:
            options: Parsed CLI arguments (pattern, markers, etc.)
            inputdir: Directory containing source files
            outputdir: Directory for conversion output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Options without a matching field (e.g. argparse extras) are dropped
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}

        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting ProgramState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final ProgramState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            sources_read,
            articles_convert,
            results_write,
            results_report
        )
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
