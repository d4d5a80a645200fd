"""Suite selector resolution.

A target is a spec file, optionally suffixed with ``:<line>``, or a
directory. Directories, the spec directory included, run unfiltered. For
a file the Jasmine ``spec`` filter is derived from the source: either
from the describe/it chain enclosing the given line, or from the first
describe in the file.
"""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import quote, urlencode

_TARGET_RE = re.compile(r"^(.+?)(?::(\d+))?$")
_DECLARATION_RE = re.compile(r"^\s*(it|describe)")
_IT_RE = re.compile(r"^\s*it")
_INDENT_RE = re.compile(r"^\s*")
_TITLE_RE = re.compile(r"""['"](.+?)["']""")
_DESCRIBE_RE = re.compile(r"""describe\s*[("']+(.*?)["')]+""")


def split_target(target: str) -> tuple[str, int | None]:
    """Split ``some_spec.js:10`` into ``("some_spec.js", 10)``.

    The line part is None when absent.
    """
    match = _TARGET_RE.match(target)
    if match is None:
        return target, None
    line = match.group(2)
    return match.group(1), None if line is None else int(line)


def target_exists(target: str) -> bool:
    """True when the file (or directory) behind target exists."""
    return Path(split_target(target)[0]).exists()


def is_spec_dir(target: str, spec_dir: str) -> bool:
    """True when target names the spec directory, trailing slash or not."""
    return Path(target) == Path(spec_dir)


def _indentation(line: str) -> int:
    match = _INDENT_RE.match(line)
    return len(match.group(0)) if match else 0


def spec_title(line: str) -> str | None:
    """Quoted title of a describe/it declaration."""
    match = _TITLE_RE.search(line)
    return match.group(1) if match else None


def it_and_describe_lines(path: Path, to: int) -> list[str]:
    """describe/it declaration lines among the first `to` lines of path."""
    with path.open(encoding="utf-8", errors="replace") as f:
        lines = f.readlines()[:to]
    return [line for line in lines if _DECLARATION_RE.match(line)]


def suite_from_line_number(target: str, default_line: int | None = None) -> str | None:
    """Suite filter for the spec or describe block at the target's line.

    The deepest declaration up to the line is kept along with its enclosing
    describe blocks (strictly shallower indentation). Sibling ``it`` lines
    are dropped.
    """
    file_name, line_number = split_target(target)
    line_number = line_number or default_line
    if not line_number:
        return None

    lines = it_and_describe_lines(Path(file_name), line_number)
    if not lines:
        return None

    last = lines.pop()
    last_indentation = _indentation(last)
    ancestors = [
        line
        for line in lines
        if _indentation(line) < last_indentation and not _IT_RE.match(line)
    ]
    ancestors.append(last)
    return " ".join(spec_title(line) or "" for line in ancestors)


def suite_from_first_describe(target: str) -> str | None:
    """Title of the first describe declaration in the target file."""
    file_name, _ = split_target(target)
    with Path(file_name).open(encoding="utf-8", errors="replace") as f:
        for line in f:
            if match := _DESCRIBE_RE.search(line):
                return match.group(1)
    return None


def suite_selector(target: str, spec_dir: str, default_line: int | None = None) -> str | None:
    """Jasmine spec filter for target. None runs everything."""
    if is_spec_dir(target, spec_dir) or Path(split_target(target)[0]).is_dir():
        return None
    return suite_from_line_number(target, default_line) or suite_from_first_describe(target)


def query_string(
    target: str,
    spec_dir: str,
    query_params: dict[str, str] | None = None,
    default_line: int | None = None,
) -> str:
    """URL query for target: caller params plus ``spec=<selector>``.

    Spaces are encoded as %20, not +.
    """
    params: dict[str, str] = dict(query_params or {})
    selector = suite_selector(target, spec_dir, default_line)
    if selector is not None:
        params["spec"] = selector
    if not params:
        return ""
    return "?" + urlencode(params, quote_via=quote)
