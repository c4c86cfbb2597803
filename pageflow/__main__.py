"""Pageflow CLI entry point.

Allows running via `python -m pageflow` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys

from .version import get_version_string

USAGE = "usage: pageflow [--version] [--verbose] [--paper SIZE] [--landscape] FILE"


def main(argv: list[str] | None = None) -> int:
    # Small hand-rolled parsing: version, verbosity, paper defaults and a filename
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] in ("--version", "-V"):
        print(get_version_string())
        return 0

    verbose = False
    paper_size = None
    orientation = None
    filename = None
    while args:
        arg = args.pop(0)
        if arg in ("--verbose", "-v"):
            verbose = True
        elif arg == "--paper":
            if not args:
                print(USAGE, file=sys.stderr)
                return 2
            paper_size = args.pop(0)
        elif arg == "--landscape":
            orientation = "landscape"
        elif arg.startswith("-") or filename is not None:
            print(USAGE, file=sys.stderr)
            return 2
        else:
            filename = arg
    if filename is None:
        print(USAGE, file=sys.stderr)
        return 2

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    # Lazy import to keep --version free of layout dependencies
    from .editor import Editor
    from .page_commands import set_document_paper_orientation, set_document_paper_size
    from .preview import PagePreview

    editor = Editor()
    editor.load_file(filename)
    if paper_size is not None and not editor.run_command(set_document_paper_size, paper_size):
        print(f"pageflow: cannot use paper size {paper_size!r}", file=sys.stderr)
        return 2
    if orientation is not None:
        editor.run_command(set_document_paper_orientation, orientation)

    PagePreview().show(editor.doc)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
