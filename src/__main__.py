#!/usr/bin/env python3
"""
wikidistill - Wikitext to plain text

Reads wikitext pages from an input directory and writes cleaned plain text
to an output directory, one .txt file per page.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Each page goes through the transformation engine:
    - Magic words, templates and parser functions are expanded
    - Math, code, tables, infoboxes and reference lists become [TYPE] markers
    - Links, emphasis, tags and page furniture are stripped
    - Categories are appended as a trailing CATEGORIES line
    - Redirect pages become a single REDIRECT line

Page titles come from file names, with underscores read as spaces
(Albert_Einstein.wiki -> "Albert Einstein").

Usage:
    wikidistill inputdir/ outputdir/ [--pattern "*.wiki"]

Examples:
    # Basic conversion
    wikidistill pages/ text/

    # Fixed reference date, citations kept, only math and table markers
    wikidistill pages/ text/ --dumpDate 2024-06-15 --extractCitations --markers math,table

    # Verbose output
    wikidistill pages/ text/ -vv
"""

import sys
from datetime import datetime
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import WikitextEngine, LookupTables, TableError, __version__, LOG, state_connectToLogger
from .models import CleanupOptions, MarkerType, ProgramState, pipeline


DISPLAY_TITLE = r"""
          _ _    _     _ _     _   _ _ _
__      _(_) | _(_) __| (_)___| |_(_) | |
\ \ /\ / / | |/ / |/ _` | / __| __| | | |
 \ V  V /| |   <| | (_| | \__ \ |_| | | |
  \_/\_/ |_|_|\_\_|\__,_|_|___/\__|_|_|_|

  Wikitext to plain text
"""

# Define CLI arguments
parser = ArgumentParser(
    description="wikidistill - Wikitext transformation engine for Wikipedia dump pages",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--pattern", default="*.wiki", type=str, help="Glob selecting page files within inputdir"
)

parser.add_argument(
    "--namespace", default="", type=str, help="Namespace of every page ('' for articles)"
)

parser.add_argument(
    "--dumpDate",
    default=None,
    type=str,
    help="Reference date (YYYY-MM-DD) for date words, ages and #time. Defaults to now",
)

parser.add_argument(
    "--noTemplates",
    action="store_true",
    help="Skip template and parser-function expansion",
)

parser.add_argument(
    "--extractCitations",
    action="store_true",
    help="Render citation templates and keep <ref> content as [ref]...[/ref]",
)

parser.add_argument(
    "--markers",
    default="all",
    type=str,
    help="Marker types rendered as [TYPE]: 'all', 'none' or a comma list (math,code,table)",
)

parser.add_argument(
    "--preserveUnknownTemplates",
    action="store_true",
    help="Keep templates the engine does not know verbatim instead of deleting them",
)

parser.add_argument(
    "--noCategories",
    action="store_true",
    help="Do not append the CATEGORIES line",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def title_fromPath(path: Path) -> str:
    """Page title for a source file: stem with underscores as spaces"""
    return path.stem.replace("_", " ").strip()


def options_build(state: ProgramState) -> CleanupOptions:
    """CleanupOptions for the CLI flags in state"""
    dump_date = None
    if state.dumpDate:
        dump_date = datetime.strptime(state.dumpDate, "%Y-%m-%d")
    return CleanupOptions(
        namespace=state.namespace,
        dump_date=dump_date,
        expand_templates=not state.noTemplates,
        extract_citations=state.extractCitations,
        markers=state.markers,
        preserve_unknown_templates=state.preserveUnknownTemplates,
    )


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and option values.

    Verifies that the input directory exists and that --dumpDate and
    --markers parse, then creates the output directory.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - textOutputdir: Created output directory path
            - envOK: True if environment is valid

    Exits:
        1 if the input directory is missing or an option is malformed
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not Path(state.inputdir).is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    if state.dumpDate:
        try:
            datetime.strptime(state.dumpDate, "%Y-%m-%d")
        except ValueError:
            print(f"Error: --dumpDate must be YYYY-MM-DD, got {state.dumpDate!r}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)

    try:
        MarkerType.set_parse(state.markers)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.textOutputdir = Path(state.outputdir)
    state.textOutputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.textOutputdir}", level=2)

    state.envOK = True
    return state


def sources_read(inputstate: ProgramState) -> ProgramState:
    """
    Read every page file matching --pattern.

    Args:
        inputstate: Program state with a validated inputdir

    Returns:
        ProgramState with added field:
            - sources: List of (title, path, raw text), sorted by path

    Exits:
        1 if a file cannot be read
    """

    state = inputstate.copy()

    LOG("Reading page files...", level=1)

    sources = []
    for path in sorted(Path(state.inputdir).glob(state.pattern)):
        if not path.is_file():
            continue
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            sys.exit(1)
        sources.append((title_fromPath(path), path, raw))
        LOG(f"Read {len(raw)} characters from {path.name}", level=2)

    state.sources = sources
    LOG(f"Found {len(sources)} pages", level=2)
    return state


def articles_convert(inputstate: ProgramState) -> ProgramState:
    """
    Classify and clean every page.

    Args:
        inputstate: Program state with sources populated

    Returns:
        ProgramState with added field:
            - articles: List of (relative output path, document, Article, exhausted)

    Exits:
        1 if the lookup tables cannot be loaded
    """

    state = inputstate.copy()

    LOG("Converting pages...", level=1)

    try:
        engine = WikitextEngine(LookupTables.load(), options=options_build(state))
    except TableError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    articles = []
    for title, path, raw in state.sources or []:
        article = engine.article_parse(title, raw)
        exhausted = False
        text = ""
        if not article.is_redirect:
            result = engine.text_cleanWithMarkers(raw, title=title)
            text, exhausted = result.text, result.exhausted
            LOG(f"{title}: {len(result.markers)} protected regions", level=3)
        document = engine.article_render(article, text, categories=not state.noCategories)
        relative = path.relative_to(state.inputdir).with_suffix(".txt")
        articles.append((relative, document, article, exhausted))

    state.articles = articles
    return state


def results_write(inputstate: ProgramState) -> ProgramState:
    """
    Write one .txt file per converted page.

    Args:
        inputstate: Program state with articles populated

    Returns:
        ProgramState with added field:
            - convertResult: Dict containing:
                - files_written: int
                - redirects: int
                - exhausted: list of titles whose expansion hit the nesting cap
    """

    state = inputstate.copy()

    written = 0
    redirects = 0
    exhausted = []
    for relative, document, article, capped in state.articles or []:
        target = state.textOutputdir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document, encoding="utf-8")
        written += 1
        if article.is_redirect:
            redirects += 1
        if capped:
            exhausted.append(article.title)
        LOG(f"Wrote {target}", level=2)

    state.convertResult = {
        "files_written": written,
        "redirects": redirects,
        "exhausted": exhausted,
    }
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display conversion results to user.

    Args:
        inputstate: Program state with convertResult populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if convertResult is None
    """
    state: ProgramState = inputstate.copy()
    if state.convertResult is None:
        print("Error: Conversion failed", file=sys.stderr)
        sys.exit(1)

    LOG("\n✓ Conversion complete", level=1)
    LOG(f"  Pages:     {state.convertResult['files_written']}", level=1)
    LOG(f"  Redirects: {state.convertResult['redirects']}", level=1)
    LOG(f"  Output:    {state.textOutputdir}", level=1)
    for title in state.convertResult["exhausted"]:
        LOG(f"  Nesting cap reached in: {title}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="wikidistill - Wikitext to plain text",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - convert wikitext pages to plain text.

    Orchestrates the conversion pipeline:
        1. env_check: Validate paths and option values
        2. sources_read: Read page files matching --pattern
        3. articles_convert: Classify and clean each page
        4. results_write: Write one .txt per page
        5. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing wikitext page files
        outputdir: Directory where plain text will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, sources_read, articles_convert, results_write, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
